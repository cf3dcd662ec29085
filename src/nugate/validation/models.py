"""Validation data models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Severity(StrEnum):
    """Issue severity, most severe first."""

    CRITICAL = "critical"
    ERROR = "error"
    REQUIRED = "required"
    WARNING = "warning"
    STYLE = "style"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Numeric rank (higher is more severe)."""
        return _SEVERITY_RANK[self]

    @property
    def is_blocking(self) -> bool:
        """Whether this severity blocks a write or fails a report."""
        return self in BLOCKING_SEVERITIES

    @classmethod
    def from_tool_label(cls, label: object) -> "Severity":
        """Translate a tool's own severity vocabulary.

        Args:
            label: Severity label reported by an external tool

        Returns:
            Matching Severity (unknown labels become WARNING)
        """
        if not isinstance(label, str):
            return cls.WARNING
        return _TOOL_SEVERITY.get(label.strip().lower(), cls.WARNING)


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.CRITICAL: 5,
    Severity.ERROR: 4,
    Severity.REQUIRED: 3,
    Severity.WARNING: 2,
    Severity.STYLE: 1,
    Severity.INFO: 0,
}

_TOOL_SEVERITY: dict[str, Severity] = {
    "error": Severity.CRITICAL,
    "fatal": Severity.CRITICAL,
    "warning": Severity.WARNING,
    "warn": Severity.WARNING,
    "info": Severity.STYLE,
    "information": Severity.STYLE,
    "hint": Severity.STYLE,
    "note": Severity.STYLE,
    "help": Severity.STYLE,
    "style": Severity.STYLE,
}

BLOCKING_SEVERITIES = frozenset({Severity.CRITICAL, Severity.ERROR, Severity.REQUIRED})


class Category(StrEnum):
    """Report section an issue belongs to (orthogonal to severity)."""

    SYNTAX = "syntax"
    TYPE = "type"
    REFERENCE = "reference"
    GUIDELINE = "guideline"
    STYLE = "style"


class ErrorKind(StrEnum):
    """Failure taxonomy, with the stable rule id each kind reports under.

    Unparsed tool output reports under ``<dialect>_error``; heuristic
    findings use their own rule ids.
    """

    TOOL_MISSING = "tool_missing"
    FILE_ERROR = "file_error"
    TOOL_TIMEOUT = "tool_timeout"
    SYNTAX_ERROR = "syntax_error"
    VALIDATOR_ERROR = "validator_error"


class Issue(BaseModel):
    """One detected defect or suggestion.

    A line of None (or 0) means the issue applies to the whole file.
    """

    severity: Severity
    rule: str
    message: str
    line: int | None = None
    column: int | None = None
    suggestion: str | None = None
    category: Category = Category.GUIDELINE
    source: str = ""
    fixable: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def is_blocking(self) -> bool:
        """Whether this issue blocks (critical, error, required)."""
        return self.severity.is_blocking

    @property
    def sort_line(self) -> int:
        """Line used for ordering; file-level issues sort first."""
        return self.line or 0

    @property
    def location_label(self) -> str:
        """Human label for the issue position."""
        if not self.line:
            return "File"
        return f"Line {self.line}"

    def render(self) -> str:
        """Render as ``Line <n>: <message> [<suggestion>]``."""
        text = f"{self.location_label}: {self.message}"
        if self.suggestion:
            text += f" [{self.suggestion}]"
        return text


class ValidationResult(BaseModel):
    """Output of one validator run against one file."""

    source: str
    file: str
    errors: list[Issue] = []
    warnings: list[Issue] = []

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_issues(cls, source: str, file: str, issues: list[Issue]) -> "ValidationResult":
        """Split issues into blocking errors and non-blocking warnings.

        Args:
            source: Validator name
            file: Target file path
            issues: Issues produced by the validator

        Returns:
            ValidationResult with every issue tagged with ``source``
        """
        tagged = [
            i if i.source == source else i.model_copy(update={"source": source}) for i in issues
        ]
        return cls(
            source=source,
            file=file,
            errors=[i for i in tagged if i.is_blocking],
            warnings=[i for i in tagged if not i.is_blocking],
        )

    @property
    def issues(self) -> list[Issue]:
        """All issues, errors first."""
        return [*self.errors, *self.warnings]

    @property
    def has_errors(self) -> bool:
        """Whether any blocking issue was reported."""
        return bool(self.errors)


class AggregateReport(BaseModel):
    """Combined, deduplicated result of a post-write cycle."""

    passed: bool
    file: str
    critical: list[Issue] = []
    warnings: list[Issue] = []
    style: list[Issue] = []
    summary: str
    total_issues: int
    message: str

    model_config = ConfigDict(frozen=True)

    @property
    def fixable_issues(self) -> list[Issue]:
        """Critical and warning issues believed to be auto-fixable."""
        return [i for i in [*self.critical, *self.warnings] if i.fixable]

    def to_hook_output(self) -> dict[str, str]:
        """Payload sent back to the host runtime on failure."""
        return {"systemMessage": self.message}


class GateAction(StrEnum):
    """Pre-write gate verdicts."""

    APPROVE = "approve"
    DENY = "deny"


class GateDecision(BaseModel):
    """Terminal verdict of the pre-write gate."""

    action: GateAction
    message: str | None = None
    issues: list[Issue] = []

    model_config = ConfigDict(frozen=True)

    @property
    def approved(self) -> bool:
        """Whether the write may proceed."""
        return self.action == GateAction.APPROVE

    def to_hook_output(self) -> dict[str, str]:
        """Payload sent back to the host runtime."""
        payload = {"action": self.action.value}
        if self.action == GateAction.DENY and self.message:
            payload["message"] = self.message
        return payload


class ToolOutput(BaseModel):
    """Captured result of one external tool invocation."""

    tool: str
    command: list[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def failed(self) -> bool:
        """Whether the tool signalled failure."""
        return self.timed_out or self.exit_code != 0

    @property
    def combined(self) -> str:
        """Stdout followed by stderr."""
        if self.stdout and self.stderr:
            return f"{self.stdout.rstrip()}\n{self.stderr}"
        return self.stdout or self.stderr


class ToolMissing(BaseModel):
    """Marker returned when a tool binary cannot be located."""

    tool: str

    model_config = ConfigDict(frozen=True)
