"""Nugate validation: pre-write gate and post-write checks for Nushell.

Public API for validation module.
"""

from nugate.validation.aggregator import aggregate, aggregate_issues, dedupe
from nugate.validation.cli import check_command, fix_command, gate_command, hook_command
from nugate.validation.config import GateConfig, ToolSpec, load_config
from nugate.validation.detector import ToolchainStatus, detect_tools
from nugate.validation.errors import ConfigError, HookInputError, NugateError
from nugate.validation.fixer import FixResult, apply_fix, get_fix_command
from nugate.validation.gate import PreWriteGate, evaluate_write
from nugate.validation.hooks import (
    HookResponse,
    post_write_hook,
    pre_write_hook,
    session_init_hook,
)
from nugate.validation.models import (
    AggregateReport,
    Category,
    GateAction,
    GateDecision,
    Issue,
    Severity,
    ValidationResult,
)
from nugate.validation.orchestrator import PostWriteOrchestrator, run_post_write
from nugate.validation.parsers import Dialect, OutputParser, get_parser, parse_output
from nugate.validation.scanners import HeuristicScanner, scan_content
from nugate.validation.tools import ToolRunner

__all__ = [
    "AggregateReport",
    "Category",
    "ConfigError",
    "Dialect",
    "FixResult",
    "GateAction",
    "GateConfig",
    "GateDecision",
    "HeuristicScanner",
    "HookInputError",
    "HookResponse",
    "Issue",
    "NugateError",
    "OutputParser",
    "PostWriteOrchestrator",
    "PreWriteGate",
    "Severity",
    "ToolRunner",
    "ToolSpec",
    "ToolchainStatus",
    "ValidationResult",
    "aggregate",
    "aggregate_issues",
    "apply_fix",
    "check_command",
    "dedupe",
    "detect_tools",
    "evaluate_write",
    "fix_command",
    "gate_command",
    "get_fix_command",
    "get_parser",
    "hook_command",
    "load_config",
    "parse_output",
    "post_write_hook",
    "pre_write_hook",
    "run_post_write",
    "scan_content",
    "session_init_hook",
]
