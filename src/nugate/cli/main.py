"""Nugate CLI application."""

from __future__ import annotations

import logging
import sys
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint

import nugate as nugate_pkg

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    human = "human"
    json = "json"
    jsonl = "jsonl"


app = typer.Typer(
    name="nugate",
    help="Write-time validation gate for Nushell scripts.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        rprint(f"nugate {nugate_pkg.__version__}")
        raise typer.Exit()


def _configure_logging() -> None:
    # stdout is reserved for hook JSON; the nugate logger level comes from
    # the loaded GateConfig
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, stream=sys.stderr)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Approve, deny and check Nushell script writes."""
    from dotenv import load_dotenv

    load_dotenv()
    _configure_logging()


@app.command("check")
def check(
    file: Annotated[Path, typer.Argument(help="Nushell script to check")],
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Also run the guideline scanners"),
    ] = False,
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.human,
) -> None:
    """Run the post-write checks (syntax, lint, format, IDE) on a file."""
    from nugate.validation.cli import check_command

    exit_code = check_command(file_path=file, strict=strict, format=format.value)
    raise typer.Exit(exit_code)


@app.command("gate")
def gate(
    file: Annotated[Path, typer.Argument(help="Nushell script to evaluate")],
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.human,
) -> None:
    """Run the pre-write gate against a file on disk."""
    from nugate.validation.cli import gate_command

    exit_code = gate_command(file_path=file, format=format.value)
    raise typer.Exit(exit_code)


@app.command("fix")
def fix(
    file: Annotated[Path, typer.Argument(help="Nushell script to fix")],
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.human,
) -> None:
    """Apply the formatter to a file, then re-run the checks."""
    from nugate.validation.cli import fix_command

    exit_code = fix_command(file_path=file, format=format.value)
    raise typer.Exit(exit_code)


hook_app = typer.Typer(help="Hook entry points (JSON on stdin, JSON on stdout).")
app.add_typer(hook_app, name="hook")


def _run_hook(name: str) -> None:
    from nugate.validation.cli import hook_command

    exit_code = hook_command(name, sys.stdin.read())
    raise typer.Exit(exit_code)


@hook_app.command("pre-write")
def pre_write() -> None:
    """Approve or deny a proposed write."""
    _run_hook("pre-write")


@hook_app.command("post-write")
def post_write() -> None:
    """Validate a file after it was written."""
    _run_hook("post-write")


@hook_app.command("session-init")
def session_init() -> None:
    """Report the available Nushell toolchain."""
    _run_hook("session-init")
