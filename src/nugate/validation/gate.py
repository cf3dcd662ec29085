"""Pre-write gate: syntax first, then structural checks, short-circuiting."""

import logging
import os
import tempfile
from pathlib import Path

from nugate.validation.config import GateConfig
from nugate.validation.models import ErrorKind, GateAction, GateDecision, Issue, Severity
from nugate.validation.scanners import HeuristicScanner
from nugate.validation.tools import ToolRunner
from nugate.validation.validators import SyntaxValidator

logger = logging.getLogger(__name__)

_SEVERITY_TITLES: dict[Severity, str] = {
    Severity.CRITICAL: "Critical",
    Severity.ERROR: "Errors",
    Severity.REQUIRED: "Required",
    Severity.WARNING: "Warnings",
    Severity.STYLE: "Style",
    Severity.INFO: "Info",
}


def format_violations(title: str, issues: list[Issue]) -> str:
    """Render issues grouped by severity, most severe first.

    Args:
        title: Heading line
        issues: Issues to render

    Returns:
        Formatted message
    """
    lines = [title]
    for severity in sorted(_SEVERITY_TITLES, key=lambda s: s.rank, reverse=True):
        group = sorted((i for i in issues if i.severity == severity), key=lambda i: i.sort_line)
        if not group:
            continue
        lines.append("")
        lines.append(f"{_SEVERITY_TITLES[severity]}:")
        for issue in group:
            lines.append(f"  {issue.location_label}: {issue.message}")
            if issue.suggestion:
                lines.append(f"    Fix: {issue.suggestion}")
    return "\n".join(lines)


class PreWriteGate:
    """Approves or denies a proposed file write."""

    def __init__(
        self,
        config: GateConfig | None = None,
        runner: ToolRunner | None = None,
    ) -> None:
        """Initialize gate.

        Args:
            config: Gate configuration (defaults if None)
            runner: Tool runner (built from config if None)
        """
        self.config = config or GateConfig()
        self.runner = runner or ToolRunner(timeout_seconds=self.config.timeout_seconds)
        self.syntax = SyntaxValidator(self.config, self.runner)
        self.scanner = HeuristicScanner(self.config)

    def evaluate(self, file_path: str, content: str) -> GateDecision:
        """Decide whether ``content`` may be written to ``file_path``.

        Args:
            file_path: Destination path
            content: Proposed file body

        Returns:
            GateDecision (approve or deny)
        """
        if not content.strip() or not self.config.is_target(file_path):
            return GateDecision(action=GateAction.APPROVE)

        syntax_issues = self.check_syntax(file_path, content)
        # a timed-out syntax tool is reported, not treated as a syntax error
        blocking = [
            i
            for i in syntax_issues
            if i.severity in (Severity.CRITICAL, Severity.ERROR)
            and i.rule != ErrorKind.TOOL_TIMEOUT
        ]
        if blocking:
            logger.info("Denied %s: %d syntax error(s)", file_path, len(blocking))
            return GateDecision(
                action=GateAction.DENY,
                message=format_violations(f"Syntax errors in {file_path}:", blocking),
                issues=blocking,
            )

        scanned = self.scanner.scan(content)
        issues = [*syntax_issues, *scanned]
        violations = [i for i in scanned if i.severity in (Severity.CRITICAL, Severity.REQUIRED)]
        if violations:
            logger.info("Denied %s: %d guideline violation(s)", file_path, len(violations))
            return GateDecision(
                action=GateAction.DENY,
                message=format_violations(f"Nushell guideline violations in {file_path}:", issues),
                issues=issues,
            )

        logger.debug("Approved %s with %d non-blocking issue(s)", file_path, len(issues))
        return GateDecision(action=GateAction.APPROVE, issues=issues)

    def check_syntax(self, file_path: str, content: str) -> list[Issue]:
        """Run the syntax tool against ``content`` staged beside ``file_path``.

        ``use ./lib.nu`` and ``source helper.nu`` resolve against the checked
        file's directory, so the staged copy lives in the destination directory
        when it exists. Otherwise it goes to the system temp directory.
        """
        suffix = self.config.extensions[0] if self.config.extensions else ".nu"
        fd, name = self._stage(Path(file_path).parent, suffix)
        path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            return self.syntax.validate(path, content).issues
        finally:
            path.unlink(missing_ok=True)

    @staticmethod
    def _stage(directory: Path, suffix: str) -> tuple[int, str]:
        if directory.is_dir():
            try:
                return tempfile.mkstemp(suffix=suffix, prefix=".nugate-", dir=directory)
            except OSError as e:
                logger.debug("Cannot stage in %s (%s); using the temp directory", directory, e)
        return tempfile.mkstemp(suffix=suffix, prefix="nugate-")


def evaluate_write(
    file_path: str,
    content: str,
    config: GateConfig | None = None,
) -> GateDecision:
    """Helper function to run the pre-write gate once."""
    return PreWriteGate(config=config).evaluate(file_path, content)
