"""Tests for validation models."""

import pytest
from pydantic import ValidationError

from nugate.validation.models import (
    AggregateReport,
    Category,
    ErrorKind,
    GateAction,
    GateDecision,
    Issue,
    Severity,
    ToolOutput,
    ValidationResult,
)
from nugate.validation.parsers import Dialect, parse_output


class TestSeverity:
    """Test Severity enum."""

    def test_all_severities_defined(self) -> None:
        """All severities are available."""
        assert Severity.CRITICAL == "critical"
        assert Severity.ERROR == "error"
        assert Severity.REQUIRED == "required"
        assert Severity.WARNING == "warning"
        assert Severity.STYLE == "style"
        assert Severity.INFO == "info"

    def test_rank_order(self) -> None:
        """Required ranks between error and warning."""
        ranks = [s.rank for s in Severity]
        assert ranks == sorted(ranks, reverse=True)
        assert Severity.ERROR.rank > Severity.REQUIRED.rank > Severity.WARNING.rank

    def test_blocking(self) -> None:
        """Critical, error and required block; the rest do not."""
        assert Severity.CRITICAL.is_blocking
        assert Severity.ERROR.is_blocking
        assert Severity.REQUIRED.is_blocking
        assert not Severity.WARNING.is_blocking
        assert not Severity.STYLE.is_blocking
        assert not Severity.INFO.is_blocking

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("error", Severity.CRITICAL),
            ("Error", Severity.CRITICAL),
            ("fatal", Severity.CRITICAL),
            ("warning", Severity.WARNING),
            ("warn", Severity.WARNING),
            ("hint", Severity.STYLE),
            ("info", Severity.STYLE),
            ("note", Severity.STYLE),
            ("mystery", Severity.WARNING),
            (None, Severity.WARNING),
        ],
    )
    def test_from_tool_label(self, label: object, expected: Severity) -> None:
        """Tool severity vocabulary maps onto ours."""
        assert Severity.from_tool_label(label) == expected


class TestErrorKind:
    """Test ErrorKind taxonomy."""

    def test_rule_ids(self) -> None:
        """Each kind reports under its own stable rule id."""
        assert [kind.value for kind in ErrorKind] == [
            "tool_missing",
            "file_error",
            "tool_timeout",
            "syntax_error",
            "validator_error",
        ]

    def test_nu_rejection_uses_syntax_error(self) -> None:
        """A bare nu-check rejection is reported as a syntax error."""
        [issue] = parse_output(Dialect.NU, "false\n", exit_code=1)
        assert issue.rule == ErrorKind.SYNTAX_ERROR


class TestIssue:
    """Test Issue model."""

    def test_defaults(self) -> None:
        """Optional fields default to None / guideline / not fixable."""
        issue = Issue(severity=Severity.WARNING, rule="r", message="m")
        assert issue.line is None
        assert issue.column is None
        assert issue.suggestion is None
        assert issue.category == Category.GUIDELINE
        assert issue.fixable is False

    def test_frozen(self) -> None:
        """Issues are immutable."""
        issue = Issue(severity=Severity.WARNING, rule="r", message="m")
        with pytest.raises(ValidationError):
            issue.message = "changed"  # type: ignore[misc]

    def test_render_with_suggestion(self) -> None:
        """Render includes line and bracketed suggestion."""
        issue = Issue(
            severity=Severity.CRITICAL,
            rule="missing_param_type",
            message="Missing type annotation for parameter 'x'",
            line=5,
            suggestion="Annotate the parameter",
        )
        assert issue.render() == (
            "Line 5: Missing type annotation for parameter 'x' [Annotate the parameter]"
        )

    def test_file_level_issue(self) -> None:
        """Issues without a line sort first and render as File."""
        issue = Issue(severity=Severity.INFO, rule="tool_missing", message="nu-lint missing")
        assert issue.sort_line == 0
        assert issue.render() == "File: nu-lint missing"


class TestValidationResult:
    """Test ValidationResult model."""

    def test_from_issues_splits_and_tags(self) -> None:
        """Blocking issues become errors; every issue gets the source."""
        issues = [
            Issue(severity=Severity.CRITICAL, rule="a", message="a"),
            Issue(severity=Severity.WARNING, rule="b", message="b"),
            Issue(severity=Severity.REQUIRED, rule="c", message="c"),
        ]
        result = ValidationResult.from_issues("lint", "x.nu", issues)

        assert [i.rule for i in result.errors] == ["a", "c"]
        assert [i.rule for i in result.warnings] == ["b"]
        assert all(i.source == "lint" for i in result.issues)
        assert result.has_errors is True

    def test_empty(self) -> None:
        """No issues means no errors."""
        result = ValidationResult.from_issues("syntax", "x.nu", [])
        assert result.issues == []
        assert result.has_errors is False


class TestAggregateReport:
    """Test AggregateReport model."""

    def test_hook_output(self) -> None:
        """Hook payload carries the message as systemMessage."""
        report = AggregateReport(
            passed=False,
            file="x.nu",
            summary="1 critical issue",
            total_issues=1,
            message="❌ Nushell validation failed for x.nu",
        )
        assert report.to_hook_output() == {"systemMessage": report.message}

    def test_fixable_issues_excludes_style(self) -> None:
        """Only critical and warning issues count as fixable work."""
        fixable_style = Issue(severity=Severity.STYLE, rule="s", message="s", fixable=True)
        fixable_warning = Issue(severity=Severity.WARNING, rule="w", message="w", fixable=True)
        report = AggregateReport(
            passed=True,
            file="x.nu",
            warnings=[fixable_warning],
            style=[fixable_style],
            summary="1 warning, 1 style issue",
            total_issues=2,
            message="",
        )
        assert report.fixable_issues == [fixable_warning]


class TestGateDecision:
    """Test GateDecision model."""

    def test_approve_output(self) -> None:
        """Approve serialises to just the action."""
        decision = GateDecision(action=GateAction.APPROVE)
        assert decision.approved is True
        assert decision.to_hook_output() == {"action": "approve"}

    def test_deny_output(self) -> None:
        """Deny carries the formatted message."""
        decision = GateDecision(action=GateAction.DENY, message="Syntax errors in x.nu:")
        assert decision.approved is False
        assert decision.to_hook_output() == {
            "action": "deny",
            "message": "Syntax errors in x.nu:",
        }


class TestToolOutput:
    """Test ToolOutput model."""

    def test_failed(self) -> None:
        """Non-zero exit or timeout counts as failure."""
        ok = ToolOutput(tool="nu", command=["nu"], exit_code=0)
        bad = ToolOutput(tool="nu", command=["nu"], exit_code=1)
        slow = ToolOutput(tool="nu", command=["nu"], exit_code=0, timed_out=True)
        assert not ok.failed
        assert bad.failed
        assert slow.failed

    def test_combined(self) -> None:
        """Combined output joins stdout and stderr."""
        output = ToolOutput(tool="nu", command=["nu"], exit_code=1, stdout="a\n", stderr="b")
        assert output.combined == "a\nb"
        assert ToolOutput(tool="nu", command=["nu"], exit_code=1, stderr="b").combined == "b"
