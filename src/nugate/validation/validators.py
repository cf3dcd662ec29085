"""Validators: one tool (or the heuristic scanners) turned into a ValidationResult."""

import logging
import re
from pathlib import Path

from nugate.validation.config import GateConfig, ToolSpec
from nugate.validation.models import (
    Category,
    ErrorKind,
    Issue,
    Severity,
    ToolMissing,
    ToolOutput,
    ValidationResult,
)
from nugate.validation.parsers import Dialect, OutputParser, get_parser
from nugate.validation.scanners import HeuristicScanner
from nugate.validation.tools import ToolRunner

logger = logging.getLogger(__name__)

_REFORMAT_RE = re.compile(
    r"would (?:be )?(?:re)?format|needs? (?:re)?formatting|not (?:properly )?formatted|^[-+@]{1,3}",
    re.IGNORECASE | re.MULTILINE,
)


def tool_missing_issue(source: str, binary: str) -> Issue:
    """Info notice for an absent tool; never blocking."""
    return Issue(
        severity=Severity.INFO,
        rule=ErrorKind.TOOL_MISSING.value,
        message=f"{binary} not found in PATH; {source} checks skipped",
        suggestion=f"Install {binary} to enable {source} checks",
        category=Category.GUIDELINE,
        source=source,
    )


def tool_timeout_issue(source: str, output: ToolOutput) -> Issue:
    """Critical issue for a tool that ran past its timeout."""
    return Issue(
        severity=Severity.CRITICAL,
        rule=ErrorKind.TOOL_TIMEOUT.value,
        message=output.stderr or f"{output.tool} timed out",
        suggestion="Raise NUGATE_TIMEOUT_SECONDS or simplify the script",
        category=Category.GUIDELINE,
        source=source,
    )


def file_error_issue(source: str, message: str) -> Issue:
    """Critical issue for a target file that cannot be validated."""
    return Issue(
        severity=Severity.CRITICAL,
        rule=ErrorKind.FILE_ERROR.value,
        message=message,
        category=Category.GUIDELINE,
        source=source,
    )


def validator_error_issue(source: str, error: Exception) -> Issue:
    """Critical issue for a validator that raised unexpectedly."""
    return Issue(
        severity=Severity.CRITICAL,
        rule=ErrorKind.VALIDATOR_ERROR.value,
        message=f"{source} validator failed: {error}",
        category=Category.GUIDELINE,
        source=source,
    )


class ToolValidator:
    """Runs one external tool and parses its output in a fixed dialect."""

    def __init__(
        self,
        source: str,
        tool: ToolSpec,
        parser: OutputParser,
        runner: ToolRunner,
    ) -> None:
        """Initialize tool validator.

        Args:
            source: Validator name reported on every issue
            tool: Tool invocation spec
            parser: Output parser for the tool's dialect
            runner: Tool runner
        """
        self.source = source
        self.tool = tool
        self.parser = parser
        self.runner = runner

    def validate(self, file_path: Path, content: str | None = None) -> ValidationResult:
        """Run the tool against ``file_path``.

        Args:
            file_path: File to check
            content: File text, used to resolve byte spans

        Returns:
            ValidationResult for this validator
        """
        output = self.runner.run(self.tool, file_path)

        if isinstance(output, ToolMissing):
            issues = [tool_missing_issue(self.source, output.tool)]
        elif output.timed_out:
            issues = [tool_timeout_issue(self.source, output)]
        else:
            issues = self.interpret(output, content)

        logger.debug("%s: %d issue(s) for %s", self.source, len(issues), file_path)
        return ValidationResult.from_issues(self.source, str(file_path), issues)

    def interpret(self, output: ToolOutput, content: str | None) -> list[Issue]:
        """Convert captured output into issues."""
        return self.parser.parse(output.combined, exit_code=output.exit_code, source_text=content)


class SyntaxValidator(ToolValidator):
    """``nu-check`` based syntax validation."""

    def __init__(self, config: GateConfig, runner: ToolRunner) -> None:
        super().__init__("syntax", config.syntax, get_parser(Dialect.NU), runner)


class LintValidator(ToolValidator):
    """Linter diagnostics."""

    def __init__(self, config: GateConfig, runner: ToolRunner) -> None:
        super().__init__("lint", config.lint, get_parser(Dialect.LINE_COL), runner)


class FormatValidator(ToolValidator):
    """Formatter in check-only mode."""

    def __init__(self, config: GateConfig, runner: ToolRunner) -> None:
        super().__init__("format", config.format_check, get_parser(Dialect.FREEFORM), runner)

    def interpret(self, output: ToolOutput, content: str | None) -> list[Issue]:
        if not output.failed:
            return []
        issues = self.parser.parse(output.combined, exit_code=0, source_text=content)
        if any(issue.is_blocking for issue in issues):
            return issues
        text = output.combined.strip()
        if not text or _REFORMAT_RE.search(text):
            return [
                *issues,
                Issue(
                    severity=Severity.STYLE,
                    rule="needs_formatting",
                    message="File is not formatted",
                    suggestion=f"Run `{self.tool.binary}` on the file",
                    category=Category.STYLE,
                    source=self.source,
                    fixable=True,
                ),
            ]
        return issues or [self.parser.fallback_issue(output.combined, output.exit_code)]


class IdeValidator(ToolValidator):
    """IDE diagnostics from ``nu --ide-check`` (JSON lines)."""

    def __init__(self, config: GateConfig, runner: ToolRunner) -> None:
        super().__init__("ide", config.ide, get_parser(Dialect.JSON_LINES), runner)


class GuidelineValidator:
    """Heuristic scanners presented as a validator."""

    source = "guidelines"

    def __init__(self, config: GateConfig) -> None:
        self.scanner = HeuristicScanner(config)

    def validate(self, file_path: Path, content: str | None = None) -> ValidationResult:
        """Scan ``content`` (read from ``file_path`` when not given)."""
        if content is None:
            content = file_path.read_text(encoding="utf-8")
        return ValidationResult.from_issues(
            self.source, str(file_path), self.scanner.scan(content)
        )


def default_validators(
    config: GateConfig,
    runner: ToolRunner,
    strict: bool = False,
) -> list[ToolValidator | GuidelineValidator]:
    """Post-write validators in their fixed, deterministic order.

    Args:
        config: Gate configuration
        runner: Shared tool runner
        strict: Also run the heuristic scanners

    Returns:
        Ordered validator list
    """
    validators: list[ToolValidator | GuidelineValidator] = [
        SyntaxValidator(config, runner),
        LintValidator(config, runner),
        FormatValidator(config, runner),
        IdeValidator(config, runner),
    ]
    if strict:
        validators.append(GuidelineValidator(config))
    return validators
