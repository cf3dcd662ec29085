"""Gate configuration.

Defaults, overridden by the nearest ``.nugate.toml`` and then by
``NUGATE_*`` environment variables.
"""

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from nugate.validation.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".nugate.toml"
FILE_PLACEHOLDER = "{file}"

_TRUTHY = {"1", "true", "yes", "on"}


class ToolSpec(BaseModel):
    """How to invoke one external tool.

    ``{file}`` in an argument is replaced by the target path; when no
    argument carries the placeholder the path is appended.
    """

    binary: str
    args: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    def argv(self, file_path: Path | str) -> list[str]:
        """Build the argument vector for ``file_path``."""
        path = str(file_path)
        if any(FILE_PLACEHOLDER in arg for arg in self.args):
            args = [arg.replace(FILE_PLACEHOLDER, path) for arg in self.args]
        else:
            args = [*self.args, path]
        return [self.binary, *args]

    def with_binary(self, binary: str) -> "ToolSpec":
        """Copy of this spec pointing at another executable."""
        return self.model_copy(update={"binary": binary})


class GateConfig(BaseModel):
    """Settings shared by the pre-write gate and post-write checks."""

    extensions: tuple[str, ...] = (".nu",)
    syntax: ToolSpec = ToolSpec(
        binary="nu",
        args=("--no-config-file", "--commands", "nu-check --debug r#'{file}'#"),
    )
    lint: ToolSpec = ToolSpec(binary="nu-lint", args=("{file}",))
    format_check: ToolSpec = ToolSpec(binary="nufmt", args=("--dry-run", "{file}"))
    format_fix: ToolSpec = ToolSpec(binary="nufmt", args=("{file}",))
    ide: ToolSpec = ToolSpec(
        binary="nu",
        args=("--no-config-file", "--ide-check", "100", "{file}"),
    )
    timeout_seconds: int = 30
    max_line_length: int = 100
    doc_window: int = 10
    entry_point: str = "main"
    disabled_rules: tuple[str, ...] = ()
    verbose: bool = False
    log_level: str = "WARNING"

    model_config = ConfigDict(frozen=True)

    @field_validator("timeout_seconds", "max_line_length", "doc_window")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level

    def is_target(self, file_path: Path | str) -> bool:
        """Whether ``file_path`` is a governed script file."""
        return str(file_path).endswith(self.extensions)

    def is_enabled(self, rule: str) -> bool:
        """Whether ``rule`` has not been switched off."""
        return rule not in self.disabled_rules


def find_config_file(start: Path) -> Path | None:
    """Find the nearest config file walking up from ``start``.

    Args:
        start: File or directory to begin the search from

    Returns:
        Path to the config file, or None
    """
    directory = start if start.is_dir() else start.parent
    for candidate in (directory, *directory.parents):
        path = candidate / CONFIG_FILENAME
        if path.is_file():
            return path
    return None


def _read_file_overrides(path: Path) -> dict[str, object]:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    overrides: dict[str, object] = {k: v for k, v in data.items() if k != "tools"}
    tools = data.get("tools", {})
    if not isinstance(tools, dict):
        raise ConfigError(f"{path}: [tools] must be a table")
    for name, spec in tools.items():
        if name not in ("syntax", "lint", "format_check", "format_fix", "ide"):
            raise ConfigError(f"{path}: unknown tool '{name}'")
        overrides[name] = spec
    return overrides


def _read_env_overrides(environ: Mapping[str, str], base: GateConfig) -> dict[str, object]:
    overrides: dict[str, object] = {}

    for key, field in (
        ("NUGATE_TIMEOUT_SECONDS", "timeout_seconds"),
        ("NUGATE_MAX_LINE_LENGTH", "max_line_length"),
    ):
        if environ.get(key):
            overrides[field] = environ[key]

    if environ.get("NUGATE_NU_BINARY"):
        binary = environ["NUGATE_NU_BINARY"]
        overrides["syntax"] = base.syntax.with_binary(binary)
        overrides["ide"] = base.ide.with_binary(binary)
    if environ.get("NUGATE_LINT_BINARY"):
        overrides["lint"] = base.lint.with_binary(environ["NUGATE_LINT_BINARY"])
    if environ.get("NUGATE_FORMAT_BINARY"):
        binary = environ["NUGATE_FORMAT_BINARY"]
        overrides["format_check"] = base.format_check.with_binary(binary)
        overrides["format_fix"] = base.format_fix.with_binary(binary)

    if "NUGATE_DISABLED_RULES" in environ:
        rules = environ["NUGATE_DISABLED_RULES"].split(",")
        overrides["disabled_rules"] = tuple(r.strip() for r in rules if r.strip())
    if environ.get("NUGATE_LOG_LEVEL"):
        overrides["log_level"] = environ["NUGATE_LOG_LEVEL"]

    verbose = environ.get("NUGATE_VERBOSE", environ.get("VERBOSE"))
    if verbose is not None:
        overrides["verbose"] = verbose.strip().lower() in _TRUTHY

    return overrides


def load_config(
    start: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> GateConfig:
    """Build the effective configuration.

    Args:
        start: Target file or directory used to locate ``.nugate.toml``
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Effective GateConfig

    Raises:
        ConfigError: If the config file or an environment value is invalid
    """
    environ = os.environ if environ is None else environ

    values: dict[str, object] = {}
    if start is not None:
        path = find_config_file(start)
        if path is not None:
            logger.debug("Loading config from %s", path)
            values.update(_read_file_overrides(path))

    try:
        config = GateConfig.model_validate(values)
        env_values = _read_env_overrides(environ, config)
        if env_values:
            config = GateConfig.model_validate({**config.model_dump(), **env_values})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    return config


def apply_log_level(config: GateConfig) -> None:
    """Set the ``nugate`` logger level from the effective configuration."""
    logging.getLogger("nugate").setLevel(config.log_level)
