"""CLI commands for validation."""

import json
from pathlib import Path

import rich
from rich.markup import escape

from nugate.validation.config import GateConfig, apply_log_level, load_config
from nugate.validation.errors import ConfigError
from nugate.validation.fixer import FixResult, apply_fix, needs_fix
from nugate.validation.gate import PreWriteGate
from nugate.validation.hooks import (
    HookResponse,
    post_write_hook,
    pre_write_hook,
    session_init_hook,
)
from nugate.validation.models import AggregateReport, GateDecision, Issue
from nugate.validation.orchestrator import PostWriteOrchestrator

_BUCKET_COLORS = {"critical": "red", "warnings": "yellow", "style": "cyan"}


def _error(message: str, format: str) -> int:
    if format == "human":
        rich.print(f"[red]Error:[/red] {message}")
    else:
        print(json.dumps({"error": message}))
    return 1


def _load(file_path: Path, format: str) -> GateConfig | None:
    try:
        config = load_config(file_path)
    except ConfigError as e:
        _error(str(e), format)
        return None
    apply_log_level(config)
    return config


def check_command(
    file_path: Path,
    strict: bool = False,
    format: str = "human",
) -> int:
    """Run the post-write checks on a file.

    Args:
        file_path: Nushell script to check
        strict: Also run the heuristic scanners
        format: Output format: "human", "json", or "jsonl"

    Returns:
        Exit code (0 = passed, 1 = failed)
    """
    config = _load(file_path, format)
    if config is None:
        return 1

    report = PostWriteOrchestrator(config=config, strict=strict).run(file_path)
    _output_report(report, format)
    return 0 if report.passed else 1


def gate_command(file_path: Path, format: str = "human") -> int:
    """Run the pre-write gate against a file already on disk.

    Args:
        file_path: Nushell script to evaluate
        format: Output format: "human", "json", or "jsonl"

    Returns:
        Exit code (0 = approved, 1 = denied)
    """
    config = _load(file_path, format)
    if config is None:
        return 1
    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return _error(f"Cannot read {file_path}: {e}", format)

    decision = PreWriteGate(config=config).evaluate(str(file_path), content)
    _output_decision(decision, str(file_path), format)
    return 0 if decision.approved else 1


def fix_command(file_path: Path, format: str = "human") -> int:
    """Check a file, apply the formatter if needed, then check again.

    Args:
        file_path: Nushell script to fix
        format: Output format: "human", "json", or "jsonl"

    Returns:
        Exit code (0 = passes after fixing, 1 = otherwise)
    """
    config = _load(file_path, format)
    if config is None:
        return 1

    orchestrator = PostWriteOrchestrator(config=config)
    report = orchestrator.run(file_path)
    if not needs_fix(report):
        if format == "human":
            rich.print(f"[dim]Nothing to fix in {file_path}[/dim]")
        _output_report(report, format)
        return 0 if report.passed else 1

    fix = apply_fix(file_path, config=config, runner=orchestrator.runner)
    _output_fix(fix, format)
    if not fix.success:
        return 1

    report = orchestrator.run(file_path)
    _output_report(report, format)
    return 0 if report.passed else 1


def hook_command(name: str, stdin_text: str) -> int:
    """Run a hook and print its stdout payload.

    Args:
        name: "pre-write", "post-write", or "session-init"
        stdin_text: Hook payload

    Returns:
        Hook exit code
    """
    response: HookResponse
    if name == "pre-write":
        response = pre_write_hook(stdin_text)
    elif name == "post-write":
        response = post_write_hook(stdin_text)
    elif name == "session-init":
        response = session_init_hook(stdin_text)
    else:
        raise ValueError(f"Unknown hook: {name}")

    text = response.render()
    if text:
        print(text)
    return response.exit_code


def _output_issues(title: str, color: str, issues: list[Issue]) -> None:
    if not issues:
        return
    rich.print(f"[{color}]{title}:[/{color}]")
    for issue in issues:
        line = f"  {issue.location_label}: {escape(issue.message)}"
        if issue.suggestion:
            line += f" [dim]({escape(issue.suggestion)})[/dim]"
        rich.print(line)


def _output_report(report: AggregateReport, format: str) -> None:
    """Output an aggregate report in the specified format.

    Args:
        report: AggregateReport to output
        format: Output format ("human", "json", or "jsonl")
    """
    if format == "json":
        print(json.dumps(report.model_dump(mode="json"), indent=2))

    elif format == "jsonl":
        # One JSON object per issue, then the summary
        for bucket in ("critical", "warnings", "style"):
            for issue in getattr(report, bucket):
                print(json.dumps({"bucket": bucket, **issue.model_dump(mode="json")}))
        summary = {
            "passed": report.passed,
            "file": report.file,
            "summary": report.summary,
            "total_issues": report.total_issues,
        }
        print(json.dumps(summary))

    else:  # human
        if report.passed:
            rich.print(f"\n[green]✓ Nushell validation passed for {report.file}[/green]\n")
        else:
            rich.print(f"\n[red]✗ Nushell validation failed for {report.file}[/red]\n")

        _output_issues("Critical issues", _BUCKET_COLORS["critical"], report.critical)
        _output_issues("Warnings", _BUCKET_COLORS["warnings"], report.warnings)
        _output_issues("Style", _BUCKET_COLORS["style"], report.style)

        rich.print(f"\n[dim]Summary: {report.summary}[/dim]")
        if report.fixable_issues:
            count = len(report.fixable_issues)
            rich.print(
                f"[yellow]{count} issues can be fixed with: nugate fix {report.file}[/yellow]"
            )
        rich.print("")


def _output_decision(decision: GateDecision, file: str, format: str) -> None:
    if format in ("json", "jsonl"):
        print(json.dumps(decision.model_dump(mode="json")))
        return

    if decision.approved:
        rich.print(f"[green]✓ Write approved for {file}[/green]")
        if decision.issues:
            rich.print(f"[dim]{len(decision.issues)} non-blocking issue(s)[/dim]")
    else:
        rich.print(f"[red]✗ Write denied for {file}[/red]")
        rich.print(escape(decision.message or ""))


def _output_fix(fix: FixResult, format: str) -> None:
    if format in ("json", "jsonl"):
        print(json.dumps(fix.model_dump(mode="json")))
        return

    if fix.success:
        rich.print(f"[green]✓ {fix.message}[/green] [dim]({fix.duration_ms}ms)[/dim]")
    else:
        rich.print(f"[red]✗ {escape(fix.message)}[/red]")
        if fix.stderr:
            print(fix.stderr.rstrip())
