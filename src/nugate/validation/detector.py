"""Toolchain detection for the Nushell environment."""

import logging

from pydantic import BaseModel

from nugate.validation.config import GateConfig
from nugate.validation.models import ToolMissing
from nugate.validation.tools import ToolRunner

logger = logging.getLogger(__name__)

_POLARS_QUERY = 'plugin list | where name == "polars" | length'


class ToolchainStatus(BaseModel):
    """Which external tools are available.

    Missing tools only disable their checks; nothing here is fatal.
    """

    nu_version: str | None = None
    syntax_available: bool = False
    lint_available: bool = False
    format_available: bool = False
    polars_plugin: bool = False

    @property
    def nu_available(self) -> bool:
        """Whether Nushell itself was found."""
        return self.nu_version is not None

    def available_checks(self) -> list[str]:
        """Names of post-write checks that can actually run."""
        checks = []
        if self.syntax_available:
            checks.append("syntax")
        if self.lint_available:
            checks.append("lint")
        if self.format_available:
            checks.append("format")
        if self.nu_available:
            checks.append("ide")
        return checks

    def describe(self, config: GateConfig) -> str:
        """One-line environment summary for the session banner."""
        parts = []
        if self.nu_available:
            parts.append(f"Nushell v{self.nu_version} detected.")
        else:
            parts.append(f"⚠️ Nushell not found in PATH ({config.syntax.binary}).")
        if self.lint_available:
            parts.append(f"{config.lint.binary} available.")
        if self.format_available:
            parts.append(f"{config.format_check.binary} available.")
        if self.polars_plugin:
            parts.append("Polars plugin loaded.")
        return " ".join(parts)


def _strip_version(text: str | None) -> str | None:
    if text is None:
        return None
    # "nushell 0.101.0" / "0.101.0"
    return text.split()[-1] if text.split() else None


def detect_tools(config: GateConfig, runner: ToolRunner | None = None) -> ToolchainStatus:
    """Probe the configured tools.

    Args:
        config: Gate configuration
        runner: Tool runner (built from config if None)

    Returns:
        ToolchainStatus
    """
    runner = runner or ToolRunner(timeout_seconds=config.timeout_seconds)

    nu_binary = config.syntax.binary
    nu_version = _strip_version(runner.version(nu_binary))

    polars = False
    if nu_version is not None:
        output = runner.run_args(nu_binary, ["--no-config-file", "--commands", _POLARS_QUERY])
        if not isinstance(output, ToolMissing) and not output.failed:
            polars = output.stdout.strip() == "1"

    status = ToolchainStatus(
        nu_version=nu_version,
        syntax_available=runner.locate(nu_binary) is not None,
        lint_available=runner.locate(config.lint.binary) is not None,
        format_available=runner.locate(config.format_check.binary) is not None,
        polars_plugin=polars,
    )
    logger.debug("Detected toolchain: %s", status)
    return status
