"""Shared test fixtures."""

import logging
import os
from collections.abc import Callable, Iterator

import pytest

from nugate.validation.models import ToolOutput

OutputFactory = Callable[..., ToolOutput]


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from the developer's NUGATE_* settings and log level."""
    for key in list(os.environ):
        if key.startswith("NUGATE_") or key == "VERBOSE":
            monkeypatch.delenv(key, raising=False)
    yield
    logging.getLogger("nugate").setLevel(logging.NOTSET)


@pytest.fixture
def make_output() -> OutputFactory:
    """Factory for captured tool results."""

    def factory(
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        tool: str = "nu",
        timed_out: bool = False,
    ) -> ToolOutput:
        return ToolOutput(
            tool=tool,
            command=[tool],
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=5,
            timed_out=timed_out,
        )

    return factory


@pytest.fixture
def nu_syntax_error() -> str:
    """What ``nu-check --debug`` prints for an unclosed paren."""
    return """\
Error: nu::parser::unclosed_delimiter

  × Unclosed delimiter.
   ╭─[/tmp/nugate-abc.nu:3:17]
 2 │ export def foo [x] {
 3 │     let y = (1 + 2
   ·                 ─┬
   ·                  ╰── unclosed (
 4 │ }
   ╰────
"""


@pytest.fixture
def well_formed_script() -> str:
    """Exported, documented, fully typed definition."""
    return """\
# Greet someone by name
export def greet [name: string, --loud]: nothing -> string {
    $"Hello ($name)"
}
"""
