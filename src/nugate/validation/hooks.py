"""Hook entry points: stdin JSON in, HookResponse out.

The host runtime calls these around file writes. They never raise; any
problem with the payload is logged and treated as nothing to validate.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from nugate.validation.config import GateConfig, apply_log_level, load_config
from nugate.validation.detector import detect_tools
from nugate.validation.errors import ConfigError, HookInputError
from nugate.validation.gate import PreWriteGate
from nugate.validation.models import GateAction
from nugate.validation.orchestrator import PostWriteOrchestrator
from nugate.validation.tools import ToolRunner

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BLOCK = 2


class HookResponse(BaseModel):
    """What a hook writes to stdout and exits with."""

    exit_code: int = EXIT_OK
    output: dict[str, Any] | None = None

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        """Stdout text for the host runtime (empty when there is no output)."""
        if self.output is None:
            return ""
        return json.dumps(self.output, ensure_ascii=False)


def parse_hook_input(stdin_text: str) -> dict[str, Any]:
    """Decode the hook payload.

    Args:
        stdin_text: Raw text read from stdin

    Returns:
        Decoded payload

    Raises:
        HookInputError: If the text is not a JSON object
    """
    try:
        payload = json.loads(stdin_text)
    except json.JSONDecodeError as e:
        raise HookInputError(f"Hook input is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise HookInputError("Hook input must be a JSON object")
    return payload


def _section(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def extract_file_path(payload: dict[str, Any]) -> str | None:
    """File path from ``tool_input`` or, failing that, ``tool_result``."""
    for key in ("tool_input", "tool_result"):
        file_path = _section(payload, key).get("file_path")
        if isinstance(file_path, str) and file_path:
            return file_path
    return None


def _resolve_config(config: GateConfig | None, file_path: str | None) -> GateConfig:
    if config is not None:
        return config
    try:
        config = load_config(Path(file_path) if file_path else None)
    except ConfigError as e:
        logger.warning("%s; using defaults", e)
        return GateConfig()
    apply_log_level(config)
    return config


def pre_write_hook(stdin_text: str, config: GateConfig | None = None) -> HookResponse:
    """Approve or deny a proposed write.

    Args:
        stdin_text: Hook payload with ``tool_input.file_path`` and ``tool_input.content``
        config: Gate configuration (loaded for the target file if None)

    Returns:
        HookResponse with ``{"action": ...}`` output
    """
    approve = HookResponse(output={"action": GateAction.APPROVE.value})
    try:
        payload = parse_hook_input(stdin_text)
    except HookInputError as e:
        logger.warning("%s; approving", e)
        return approve

    tool_input = _section(payload, "tool_input")
    file_path = tool_input.get("file_path")
    content = tool_input.get("content")
    if not isinstance(file_path, str) or not isinstance(content, str):
        logger.debug("Pre-write payload has no file_path/content; approving")
        return approve

    config = _resolve_config(config, file_path)
    if not config.is_target(file_path):
        return approve

    try:
        decision = PreWriteGate(config=config).evaluate(file_path, content)
    except OSError as e:
        logger.warning("Cannot stage %s for syntax check: %s; approving", file_path, e)
        return approve

    exit_code = EXIT_OK if decision.approved else EXIT_BLOCK
    return HookResponse(exit_code=exit_code, output=decision.to_hook_output())


def post_write_hook(
    stdin_text: str,
    config: GateConfig | None = None,
    strict: bool = False,
) -> HookResponse:
    """Validate a file that was just written.

    Args:
        stdin_text: Hook payload with ``tool_input.file_path`` or ``tool_result.file_path``
        config: Gate configuration (loaded for the target file if None)
        strict: Also run the heuristic scanners

    Returns:
        HookResponse; exit 2 with a ``systemMessage`` on failure
    """
    try:
        payload = parse_hook_input(stdin_text)
    except HookInputError as e:
        logger.warning("%s; nothing to validate", e)
        return HookResponse()

    file_path = extract_file_path(payload)
    if file_path is None:
        logger.debug("Post-write payload has no file_path; nothing to validate")
        return HookResponse()

    config = _resolve_config(config, file_path)
    if not config.is_target(file_path):
        return HookResponse()

    report = PostWriteOrchestrator(config=config, strict=strict).run(Path(file_path))
    if not report.passed:
        return HookResponse(exit_code=EXIT_BLOCK, output=report.to_hook_output())
    if config.verbose:
        return HookResponse(
            output={"systemMessage": f"✅ Nushell validation passed for {file_path}"}
        )
    return HookResponse()


def session_init_hook(
    stdin_text: str = "",
    config: GateConfig | None = None,
    runner: ToolRunner | None = None,
) -> HookResponse:
    """Describe the toolchain at session start.

    Args:
        stdin_text: Hook payload (unused beyond an optional ``cwd``)
        config: Gate configuration (loaded from ``cwd`` if None)
        runner: Tool runner (built from config if None)

    Returns:
        HookResponse with a ``systemMessage`` and ``continue: true``
    """
    cwd: str | None = None
    if stdin_text.strip():
        try:
            value = parse_hook_input(stdin_text).get("cwd")
            cwd = value if isinstance(value, str) else None
        except HookInputError as e:
            logger.debug("%s; ignoring session payload", e)

    config = _resolve_config(config, cwd)
    status = detect_tools(config, runner)
    message = f"Nushell Development Environment: {status.describe(config)}"
    return HookResponse(output={"systemMessage": message, "continue": True})
