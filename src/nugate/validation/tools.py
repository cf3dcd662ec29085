"""Tool runner for invoking external analysis tools."""

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from nugate.validation.config import ToolSpec
from nugate.validation.models import ToolMissing, ToolOutput

logger = logging.getLogger(__name__)


class ToolRunner:
    """Runs an external tool and captures its output."""

    def __init__(
        self,
        timeout_seconds: int = 30,
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize tool runner.

        Args:
            timeout_seconds: Per-invocation timeout in seconds (default: 30)
            env: Optional environment variables
        """
        self.timeout_seconds = timeout_seconds
        self.env = env

    def locate(self, binary: str) -> str | None:
        """Resolve ``binary`` on PATH."""
        return shutil.which(binary)

    def run(
        self,
        tool: ToolSpec,
        file_path: Path | str,
        timeout_seconds: int | None = None,
    ) -> ToolOutput | ToolMissing:
        """Execute a tool against a file.

        Never raises: a missing binary yields ToolMissing, a timeout or an
        OS-level launch failure yields a failed ToolOutput.

        Args:
            tool: Tool invocation spec
            file_path: Target file
            timeout_seconds: Override for this call only

        Returns:
            ToolOutput, or ToolMissing when the binary is not on PATH
        """
        return self.run_args(tool.binary, tool.argv(file_path)[1:], timeout_seconds)

    def run_args(
        self,
        binary: str,
        args: list[str],
        timeout_seconds: int | None = None,
    ) -> ToolOutput | ToolMissing:
        """Execute ``binary`` with explicit arguments.

        Args:
            binary: Executable name or path
            args: Arguments passed verbatim
            timeout_seconds: Override for this call only

        Returns:
            ToolOutput, or ToolMissing when the binary is not on PATH
        """
        if self.locate(binary) is None:
            logger.info("%s not found in PATH", binary)
            return ToolMissing(tool=binary)

        command = [binary, *args]
        timeout = timeout_seconds or self.timeout_seconds
        start_time = time.time()

        try:
            run_env = os.environ.copy()
            if self.env:
                run_env.update(self.env)

            logger.debug("Running %s", command)
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=run_env,
            )

            duration_ms = max(1, int((time.time() - start_time) * 1000))
            logger.debug("%s exited %d in %dms", binary, result.returncode, duration_ms)

            return ToolOutput(
                tool=binary,
                command=command,
                exit_code=result.returncode,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                duration_ms=duration_ms,
            )

        except subprocess.TimeoutExpired:
            duration_ms = max(int((time.time() - start_time) * 1000), int(timeout * 1000))
            logger.warning("%s timed out after %ss", binary, timeout)
            return ToolOutput(
                tool=binary,
                command=command,
                exit_code=-1,
                stderr=f"{binary} timed out after {timeout}s",
                duration_ms=duration_ms,
                timed_out=True,
            )

        except OSError as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.warning("%s could not be started: %s", binary, e)
            return ToolOutput(
                tool=binary,
                command=command,
                exit_code=-1,
                stderr=f"{binary} could not be started: {e}",
                duration_ms=duration_ms,
            )

    def version(self, binary: str) -> str | None:
        """First line of ``<binary> --version``, or None if unavailable."""
        output = self.run_args(binary, ["--version"], timeout_seconds=10)
        if isinstance(output, ToolMissing) or output.failed:
            return None
        lines = output.stdout.strip().splitlines()
        return lines[0].strip() if lines else None


def run_tool(
    tool: ToolSpec,
    file_path: Path | str,
    timeout_seconds: int = 30,
) -> ToolOutput | ToolMissing:
    """Helper function to run a single tool.

    Args:
        tool: Tool invocation spec
        file_path: Target file
        timeout_seconds: Command timeout in seconds

    Returns:
        ToolOutput or ToolMissing
    """
    runner = ToolRunner(timeout_seconds=timeout_seconds)
    return runner.run(tool, file_path)
