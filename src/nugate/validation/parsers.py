"""Parsers for external tool output.

Every dialect is an ordered tuple of rules. Each output line is offered to
the rules in order and the first match wins. Matches are folded into an
:class:`IssueAccumulator`, which tracks the currently open issue so that
location, label and hint lines attach to the diagnostic they follow.
"""

import json
import re
from abc import ABC, abstractmethod
from bisect import bisect_right
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from functools import cached_property

from nugate.validation.models import Category, ErrorKind, Issue, Severity

MAX_EXCERPT_LENGTH = 300

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")
_DECORATION_CHARS = frozenset("─━│┃╭╮╰╯┌┐└┘├┤┬┴┼═║·•╷╵ \t")

_TYPE_KEYWORDS = ("type mismatch", "type_mismatch", "expected type", "incompatible type")
_REFERENCE_KEYWORDS = (
    "not found",
    "not_found",
    "unknown command",
    "unknown flag",
    "undefined",
    "does not exist",
    "doesn't exist",
)


class Dialect(StrEnum):
    """Output shapes emitted by the external tools."""

    NU = "nu"
    LINE_COL = "line_col"
    JSON_LINES = "json_lines"
    FREEFORM = "freeform"


class LineKind(StrEnum):
    """What a matched line contributes to the accumulator."""

    HEADER = "header"
    TITLE = "title"
    LOCATION = "location"
    DETAIL = "detail"
    HINT = "hint"
    SKIP = "skip"


@dataclass(frozen=True, slots=True)
class LineMatch:
    """Fields extracted from one output line."""

    kind: LineKind
    message: str = ""
    severity: Severity | None = None
    line: int | None = None
    column: int | None = None
    rule: str | None = None
    suggestion: str | None = None
    category: Category | None = None
    fixable: bool = False


@dataclass
class ParseContext:
    """Side information available while parsing.

    ``source_text`` is the analysed file, used to turn byte spans into
    line/column positions.
    """

    source_text: str | None = None

    @cached_property
    def _line_starts(self) -> list[int]:
        data = (self.source_text or "").encode("utf-8")
        starts = [0]
        starts.extend(i + 1 for i, byte in enumerate(data) if byte == 0x0A)
        return starts

    def position(self, offset: int) -> tuple[int | None, int | None]:
        """Convert a byte offset into a 1-indexed (line, column) pair."""
        if self.source_text is None or offset < 0:
            return None, None
        line_index = bisect_right(self._line_starts, offset) - 1
        return line_index + 1, offset - self._line_starts[line_index] + 1


class ParseRule(ABC):
    """One pattern rule within a dialect."""

    name: str

    @abstractmethod
    def match(self, line: str, context: ParseContext) -> LineMatch | None:
        """Return a LineMatch if this rule recognises ``line``."""


class RegexRule(ParseRule):
    """Rule backed by a regular expression and a builder."""

    def __init__(
        self,
        name: str,
        pattern: str,
        build: Callable[[re.Match[str]], LineMatch | None],
        flags: int = 0,
    ) -> None:
        self.name = name
        self.pattern = re.compile(pattern, flags)
        self.build = build

    def match(self, line: str, context: ParseContext) -> LineMatch | None:
        found = self.pattern.search(line)
        if found is None:
            return None
        return self.build(found)


class JsonRule(ParseRule):
    """Rule matching one JSON object per line."""

    def __init__(
        self,
        name: str,
        build: Callable[[dict[str, object], ParseContext], LineMatch | None],
    ) -> None:
        self.name = name
        self.build = build

    def match(self, line: str, context: ParseContext) -> LineMatch | None:
        stripped = line.strip()
        if not stripped.startswith("{"):
            return None
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            return None
        if not isinstance(payload, dict):
            return None
        return self.build(payload, context)


@dataclass
class _OpenIssue:
    severity: Severity
    message: str
    rule: str | None = None
    line: int | None = None
    column: int | None = None
    hints: list[str] = field(default_factory=list)
    details: list[str] = field(default_factory=list)
    category: Category | None = None
    fixable: bool = False
    awaiting_title: bool = False


class IssueAccumulator:
    """Explicit state for the line fold: closed issues plus the open one."""

    def __init__(self, parser: "OutputParser") -> None:
        self.parser = parser
        self.closed: list[_OpenIssue] = []
        self.current: _OpenIssue | None = None

    def feed(self, found: LineMatch) -> "IssueAccumulator":
        """Apply one matched line and return the accumulator."""
        if found.kind == LineKind.HEADER:
            self._open(found, awaiting_title=not found.message)
        elif found.kind == LineKind.TITLE:
            if self.current is not None and self.current.awaiting_title:
                self.current.message = found.message
                self.current.awaiting_title = False
            else:
                self._open(found, awaiting_title=False)
        elif found.kind == LineKind.LOCATION:
            if self.current is not None:
                self.current.line = found.line
                self.current.column = found.column
        elif found.kind == LineKind.DETAIL:
            if self.current is not None and found.message:
                self.current.details.append(found.message)
        elif found.kind == LineKind.HINT:
            if self.current is not None and found.suggestion:
                self.current.hints.append(found.suggestion)
        return self

    def _open(self, found: LineMatch, awaiting_title: bool) -> None:
        self._close()
        self.current = _OpenIssue(
            severity=found.severity or self.parser.default_severity,
            message=found.message or found.rule or "",
            rule=found.rule,
            line=found.line,
            column=found.column,
            category=found.category,
            fixable=found.fixable,
            awaiting_title=awaiting_title,
        )
        if found.suggestion:
            self.current.hints.append(found.suggestion)

    def _close(self) -> None:
        if self.current is not None:
            self.closed.append(self.current)
            self.current = None

    def finish(self) -> list[Issue]:
        """Close the open issue and materialise all issues."""
        self._close()
        return [self.parser.to_issue(item) for item in self.closed]


@dataclass(frozen=True)
class OutputParser:
    """Ordered rule list for one dialect, plus its fallback behaviour."""

    dialect: Dialect
    rules: tuple[ParseRule, ...]
    default_rule: str
    default_category: Category
    default_severity: Severity = Severity.CRITICAL

    @property
    def fallback_rule(self) -> str:
        """Rule id used when output could not be parsed."""
        return f"{self.dialect.value}_error"

    def match_line(self, line: str, context: ParseContext) -> LineMatch | None:
        """Offer ``line`` to each rule in order; first match wins."""
        for rule in self.rules:
            found = rule.match(line, context)
            if found is not None:
                return found
        return None

    def parse(
        self,
        raw_text: str,
        exit_code: int = 0,
        source_text: str | None = None,
    ) -> list[Issue]:
        """Parse tool output into issues.

        Args:
            raw_text: Combined tool output
            exit_code: Tool exit code; non-zero with no parsed issues
                produces one fallback issue
            source_text: Content of the analysed file, for span conversion

        Returns:
            Issues in output order
        """
        context = ParseContext(source_text=source_text)
        accumulator = IssueAccumulator(self)
        for line in self.split_lines(raw_text):
            found = self.match_line(line, context)
            if found is not None:
                accumulator.feed(found)
        issues = accumulator.finish()

        if not issues and exit_code != 0:
            issues = [self.fallback_issue(raw_text, exit_code)]
        return issues

    def split_lines(self, raw_text: str) -> list[str]:
        """Non-blank, non-decoration lines with ANSI escapes removed."""
        text = _ANSI_RE.sub("", raw_text)
        if self.dialect == Dialect.JSON_LINES:
            text = _expand_json_document(text)
        lines = []
        for line in text.splitlines():
            if not line.strip():
                continue
            if all(char in _DECORATION_CHARS for char in line):
                continue
            lines.append(line.rstrip())
        return lines

    def fallback_issue(self, raw_text: str, exit_code: int) -> Issue:
        """Single generic issue for output no rule could interpret."""
        excerpt = _ANSI_RE.sub("", raw_text).strip()
        if not excerpt:
            excerpt = f"{self.dialect.value} tool exited with code {exit_code} and no output"
        elif len(excerpt) > MAX_EXCERPT_LENGTH:
            excerpt = excerpt[: MAX_EXCERPT_LENGTH - 3] + "..."
        return Issue(
            severity=Severity.CRITICAL,
            rule=self.fallback_rule,
            message=excerpt,
            category=self.default_category,
        )

    def to_issue(self, item: _OpenIssue) -> Issue:
        """Build the final Issue from an accumulated entry."""
        # message is the bare title; labels go to the suggestion
        message = item.message.strip()
        details = [detail for detail in item.details if detail not in message]
        if not message and details:
            message = details.pop(0)
        message = message or item.rule or self.default_rule
        rule = item.rule or self.default_rule
        return Issue(
            severity=item.severity,
            rule=rule,
            message=message,
            line=item.line or None,
            column=item.column or None,
            suggestion="; ".join([*details, *item.hints]) or None,
            category=item.category or _infer_category(f"{rule} {message}", self.default_category),
            fixable=item.fixable,
        )


def _infer_category(text: str, default: Category) -> Category:
    lowered = text.lower()
    if any(keyword in lowered for keyword in _TYPE_KEYWORDS):
        return Category.TYPE
    if any(keyword in lowered for keyword in _REFERENCE_KEYWORDS):
        return Category.REFERENCE
    return default


def _expand_json_document(text: str) -> str:
    """Turn a whole-document JSON array (or wrapper object) into JSON lines."""
    stripped = text.strip()
    if not stripped or stripped[0] not in "[{":
        return text
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        return text
    if isinstance(payload, dict):
        for key in ("diagnostics", "violations", "issues", "errors"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
        else:
            return json.dumps(payload)
    if isinstance(payload, list):
        return "\n".join(json.dumps(item) for item in payload)
    return text


def _int_or_none(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _rule_from_code(code: str | None) -> str | None:
    """``nu::parser::parse_mismatch`` -> ``parse_mismatch``."""
    if not code:
        return None
    return code.rsplit("::", 1)[-1].replace("-", "_") or None


def _hint(found: re.Match[str]) -> LineMatch:
    return LineMatch(kind=LineKind.HINT, suggestion=found.group("text").strip())


def _did_you_mean(found: re.Match[str]) -> LineMatch:
    return LineMatch(kind=LineKind.HINT, suggestion=found.string.strip())


def _location(found: re.Match[str]) -> LineMatch:
    column = found.groupdict().get("col")
    return LineMatch(
        kind=LineKind.LOCATION,
        line=int(found.group("line")),
        column=int(column) if column else None,
    )


def _bracketed_severity(found: re.Match[str]) -> LineMatch:
    line = found.group("line")
    column = found.groupdict().get("col")
    return LineMatch(
        kind=LineKind.HEADER,
        severity=Severity.from_tool_label(found.group("sev")),
        message=found.group("msg").strip(),
        line=int(line) if line else None,
        column=int(column) if column else None,
    )


def _labelled_severity(found: re.Match[str]) -> LineMatch:
    return LineMatch(
        kind=LineKind.HEADER,
        severity=Severity.from_tool_label(found.group("sev")),
        message=found.group("msg").strip(),
        rule=_rule_from_code(found.groupdict().get("code")),
    )


# --- nu (box-drawn diagnostics) ---


def _nu_header_with_title(found: re.Match[str]) -> LineMatch:
    return LineMatch(
        kind=LineKind.HEADER,
        severity=Severity.from_tool_label(found.group("sev")),
        message=found.group("msg").strip(),
        rule=_rule_from_code(found.groupdict().get("code")),
    )


def _nu_header(found: re.Match[str]) -> LineMatch:
    return LineMatch(
        kind=LineKind.HEADER,
        severity=Severity.from_tool_label(found.group("sev")),
        rule=_rule_from_code(found.group("code")),
    )


def _nu_title(found: re.Match[str]) -> LineMatch:
    return LineMatch(kind=LineKind.TITLE, message=found.group("msg").strip())


def _nu_label(found: re.Match[str]) -> LineMatch:
    return LineMatch(kind=LineKind.DETAIL, message=found.group("label").strip())


def _nu_rejected(found: re.Match[str]) -> LineMatch:
    return LineMatch(
        kind=LineKind.HEADER,
        message="nu-check reported the script as invalid",
        rule=ErrorKind.SYNTAX_ERROR.value,
    )


def _path_line_col(found: re.Match[str]) -> LineMatch:
    rest = found.group("rest").strip()
    severity: Severity | None = None
    rule: str | None = None

    prefix = _SEVERITY_PREFIX_RE.match(rest)
    if prefix is not None:
        severity = Severity.from_tool_label(prefix.group("sev"))
        rule = _rule_from_code(prefix.group("code"))
        rest = rest[prefix.end() :].strip()

    fixable = False
    if rest.endswith(_FIXABLE_MARKER):
        fixable = True
        rest = rest[: -len(_FIXABLE_MARKER)].strip()

    trailing = _TRAILING_CODE_RE.search(rest)
    if trailing is not None:
        rule = rule or _rule_from_code(trailing.group("code"))
        rest = rest[: trailing.start()].strip()

    column = found.group("col")
    return LineMatch(
        kind=LineKind.HEADER,
        severity=severity,
        message=rest,
        line=int(found.group("line")),
        column=int(column) if column else None,
        rule=rule,
        fixable=fixable,
    )


_SEVERITY_PREFIX_RE = re.compile(
    r"(?P<sev>error|warning|warn|info|hint|note|style)(?:\[(?P<code>[\w\-:.]+)\])?\s*:\s*",
    re.IGNORECASE,
)
_TRAILING_CODE_RE = re.compile(r"\s+\[(?P<code>[\w\-:.]+)\]$")
_FIXABLE_MARKER = "(fixable)"

_PATH_LINE_COL = r"^(?P<path>[^\s:][^:]*):(?P<line>\d+)(?::(?P<col>\d+))?:\s*(?P<rest>\S.*)$"
_HINT = r"^\s*(?:=\s*)?(?:help|hint|suggestion|fix)\s*:\s*(?P<text>\S.*)$"
_DID_YOU_MEAN = r"\bdid you mean\b"
_BRACKETED = (
    r"^\s*\[(?P<sev>error|warning|warn|info|hint)\]\s*(?P<msg>.+?)"
    r"(?:\s*\(line\s+(?P<line>\d+)(?:,\s*col(?:umn)?\s+(?P<col>\d+))?\))?\s*$"
)

NU_RULES: tuple[ParseRule, ...] = (
    RegexRule(
        "nu_header_with_title",
        r"^\s*(?P<sev>Error|Warning):\s+(?:(?P<code>nu::[\w:]+)\s+)?×\s+(?P<msg>.+)$",
        _nu_header_with_title,
    ),
    RegexRule("nu_header", r"^\s*(?P<sev>Error|Warning):\s+(?P<code>nu::[\w:]+)\s*$", _nu_header),
    RegexRule("nu_title", r"^\s*×\s+(?P<msg>.+)$", _nu_title),
    RegexRule(
        "nu_location",
        r"╭─+\[(?P<path>.*?):(?P<line>\d+):(?P<col>\d+)\]",
        _location,
    ),
    RegexRule("nu_label", r"^[\s│·]*[╰├]─+\s*(?P<label>\S.*)$", _nu_label),
    RegexRule("nu_help", _HINT, _hint, re.IGNORECASE),
    RegexRule("nu_code_excerpt", r"^\s*\d+\s*│", lambda found: LineMatch(kind=LineKind.SKIP)),
    RegexRule("nu_rejected", r"^\s*false\s*$", _nu_rejected),
    RegexRule("path_line_col", _PATH_LINE_COL, _path_line_col),
    RegexRule(
        "error_line",
        r"^\s*(?P<sev>error|warning)(?:\[(?P<code>[\w\-:.]+)\])?\s*:\s*(?P<msg>\S.*)$",
        _labelled_severity,
        re.IGNORECASE,
    ),
)

# --- line_col (linter text output) ---

LINE_COL_RULES: tuple[ParseRule, ...] = (
    RegexRule("path_line_col", _PATH_LINE_COL, _path_line_col),
    RegexRule("hint", _HINT, _hint, re.IGNORECASE),
    RegexRule("did_you_mean", _DID_YOU_MEAN, _did_you_mean, re.IGNORECASE),
    RegexRule(
        "arrow_location",
        r"^\s*(?:-->|at)\s+(?P<path>\S.*?):(?P<line>\d+)(?::(?P<col>\d+))?\s*$",
        _location,
    ),
    RegexRule("bare_location", r"^\s*(?P<line>\d+):(?P<col>\d+)\s*$", _location),
    RegexRule(
        "severity_code",
        r"^\s*(?P<sev>error|warning|warn|info|hint|note)(?:\[(?P<code>[\w\-:.]+)\])?\s*:\s*"
        r"(?P<msg>\S.*)$",
        _labelled_severity,
        re.IGNORECASE,
    ),
    RegexRule("bracketed", _BRACKETED, _bracketed_severity, re.IGNORECASE),
)

# --- json_lines (IDE diagnostics, JSON linter output) ---

_DIAGNOSTIC_TYPES = frozenset({"diagnostic", "error", "warning", "issue", "violation"})


def _json_position(
    payload: dict[str, object], context: ParseContext
) -> tuple[int | None, int | None]:
    line = _int_or_none(payload.get("line"))
    column = _int_or_none(payload.get("column", payload.get("col")))
    if line is not None:
        return line, column

    for key in ("location", "start", "position"):
        nested = payload.get(key)
        if isinstance(nested, dict):
            line = _int_or_none(nested.get("line"))
            if line is not None:
                return line, _int_or_none(nested.get("column", nested.get("col")))

    span = payload.get("span")
    if isinstance(span, dict):
        start = _int_or_none(span.get("start"))
        if start is not None:
            return context.position(start)
    return None, None


def _json_suggestion(payload: dict[str, object]) -> str | None:
    for key in ("suggestion", "help", "hint"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    fix = payload.get("fix")
    if isinstance(fix, str) and fix.strip():
        return fix.strip()
    if isinstance(fix, dict):
        for key in ("description", "message", "replacement"):
            value = fix.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _json_diagnostic(payload: dict[str, object], context: ParseContext) -> LineMatch:
    kind = payload.get("type")
    if isinstance(kind, str) and kind.lower() not in _DIAGNOSTIC_TYPES:
        return LineMatch(kind=LineKind.SKIP)

    message = None
    for key in ("message", "msg", "title"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            message = value.strip()
            break
    if message is None:
        return LineMatch(kind=LineKind.SKIP)

    label = payload.get("severity", payload.get("level", kind))
    rule = payload.get("rule", payload.get("code", payload.get("rule_id")))
    line, column = _json_position(payload, context)
    return LineMatch(
        kind=LineKind.HEADER,
        severity=Severity.from_tool_label(label) if label is not None else None,
        message=message,
        line=line,
        column=column,
        rule=_rule_from_code(rule) if isinstance(rule, str) else None,
        suggestion=_json_suggestion(payload),
        fixable=bool(payload.get("fixable")) or "fix" in payload,
    )


JSON_LINES_RULES: tuple[ParseRule, ...] = (JsonRule("json_diagnostic", _json_diagnostic),)

# --- freeform (formatter output) ---

FREEFORM_RULES: tuple[ParseRule, ...] = (
    RegexRule("bracketed", _BRACKETED, _bracketed_severity, re.IGNORECASE),
    RegexRule("hint", _HINT, _hint, re.IGNORECASE),
    RegexRule("did_you_mean", _DID_YOU_MEAN, _did_you_mean, re.IGNORECASE),
    RegexRule(
        "tool_severity",
        r"^\s*(?:[\w.\-]+:\s+)?(?P<sev>error|warning|warn)(?:\[(?P<code>[^\]]+)\])?\s*:\s*"
        r"(?P<msg>\S.*)$",
        _labelled_severity,
        re.IGNORECASE,
    ),
    RegexRule(
        "line_location",
        r"^\s*(?:at\s+)?line\s+(?P<line>\d+)(?:\s*[,:]?\s*col(?:umn)?\s+(?P<col>\d+))?\s*$",
        _location,
        re.IGNORECASE,
    ),
)

PARSERS: dict[Dialect, OutputParser] = {
    Dialect.NU: OutputParser(
        dialect=Dialect.NU,
        rules=NU_RULES,
        default_rule=ErrorKind.SYNTAX_ERROR.value,
        default_category=Category.SYNTAX,
    ),
    Dialect.LINE_COL: OutputParser(
        dialect=Dialect.LINE_COL,
        rules=LINE_COL_RULES,
        default_rule="lint_violation",
        default_category=Category.GUIDELINE,
        default_severity=Severity.WARNING,
    ),
    Dialect.JSON_LINES: OutputParser(
        dialect=Dialect.JSON_LINES,
        rules=JSON_LINES_RULES,
        default_rule="ide_diagnostic",
        default_category=Category.SYNTAX,
    ),
    Dialect.FREEFORM: OutputParser(
        dialect=Dialect.FREEFORM,
        rules=FREEFORM_RULES,
        default_rule="format_error",
        default_category=Category.STYLE,
    ),
}


def get_parser(dialect: Dialect) -> OutputParser:
    """Look up the parser for a dialect."""
    return PARSERS[dialect]


def parse_output(
    dialect: Dialect,
    raw_text: str,
    exit_code: int = 0,
    source_text: str | None = None,
) -> list[Issue]:
    """Helper function to parse tool output in one dialect.

    Args:
        dialect: Output dialect
        raw_text: Combined tool output
        exit_code: Tool exit code
        source_text: Analysed file content (for span conversion)

    Returns:
        Parsed issues
    """
    return get_parser(dialect).parse(raw_text, exit_code=exit_code, source_text=source_text)
