"""Auto-fix by delegating to the external formatter."""

import logging
import time
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from nugate.validation.config import GateConfig
from nugate.validation.models import AggregateReport, ToolMissing
from nugate.validation.tools import ToolRunner

logger = logging.getLogger(__name__)


class FixResult(BaseModel):
    """Result from attempting to auto-fix a file."""

    success: bool
    file: str
    fix_command: list[str] | None
    message: str
    duration_ms: int
    stdout: str | None = None
    stderr: str | None = None

    model_config = ConfigDict(frozen=True)


def get_fix_command(file_path: Path, config: GateConfig) -> list[str] | None:
    """Get the formatter command that rewrites ``file_path`` in place.

    Args:
        file_path: File to fix
        config: Gate configuration

    Returns:
        Argument vector, or None if the file is not a governed script
    """
    if not config.is_target(file_path):
        return None
    return config.format_fix.argv(file_path)


def needs_fix(report: AggregateReport) -> bool:
    """Whether a check-only report found anything the formatter may fix."""
    return any(issue.fixable for issue in [*report.critical, *report.warnings, *report.style])


def apply_fix(
    file_path: Path,
    config: GateConfig | None = None,
    runner: ToolRunner | None = None,
) -> FixResult:
    """Run the formatter in write mode on ``file_path``.

    Call only after a check-only run; this rewrites the file.

    Args:
        file_path: File to fix
        config: Gate configuration (defaults if None)
        runner: Tool runner (built from config if None)

    Returns:
        FixResult with fix outcome
    """
    config = config or GateConfig()
    runner = runner or ToolRunner(timeout_seconds=config.timeout_seconds)
    file = str(file_path)

    fix_command = get_fix_command(file_path, config)
    if fix_command is None:
        return FixResult(
            success=False,
            file=file,
            fix_command=None,
            message=f"{file} is not a Nushell script",
            duration_ms=0,
        )

    if not file_path.is_file():
        return FixResult(
            success=False,
            file=file,
            fix_command=fix_command,
            message=f"{file} does not exist",
            duration_ms=0,
        )

    start_time = time.time()
    output = runner.run(config.format_fix, file_path)

    if isinstance(output, ToolMissing):
        return FixResult(
            success=False,
            file=file,
            fix_command=fix_command,
            message=f"{output.tool} not found in PATH; cannot apply fixes",
            duration_ms=0,
        )

    duration_ms = max(output.duration_ms, int((time.time() - start_time) * 1000))

    if output.timed_out:
        message = f"Fix command timeout after {runner.timeout_seconds}s"
    elif output.exit_code == 0:
        message = f"Successfully formatted {file}"
    else:
        message = f"Fix command failed for {file}"
    logger.info(message)

    return FixResult(
        success=not output.failed,
        file=file,
        fix_command=fix_command,
        message=message,
        duration_ms=duration_ms,
        stdout=output.stdout,
        stderr=output.stderr,
    )
