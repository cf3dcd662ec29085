"""Heuristic scanners for Nushell source.

Pure text analysis over the line list; no external tool involved. Each
scanner is an independent pass. Severity, category and fixability come
from the static :data:`RULES` table, never from the scanner itself.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from nugate.validation.config import GateConfig
from nugate.validation.models import Category, Issue, Severity

SOURCE = "guidelines"

_SIGNATURE_LINE_LIMIT = 50


@dataclass(frozen=True)
class RuleSpec:
    """Static metadata for one heuristic rule."""

    severity: Severity
    category: Category
    fixable: bool
    suggestion: str


RULES: Mapping[str, RuleSpec] = MappingProxyType(
    {
        "missing_return_type": RuleSpec(
            Severity.CRITICAL,
            Category.TYPE,
            False,
            "Declare input/output types after the parameter list, "
            "e.g. `]: nothing -> string {`",
        ),
        "missing_param_type": RuleSpec(
            Severity.CRITICAL,
            Category.TYPE,
            False,
            "Annotate the parameter as `name: type`",
        ),
        "missing_documentation": RuleSpec(
            Severity.REQUIRED,
            Category.GUIDELINE,
            False,
            "Add a `# description` comment directly above the definition",
        ),
        "missing_help_flag": RuleSpec(
            Severity.REQUIRED,
            Category.GUIDELINE,
            False,
            "Add `--help (-h)` to the parameter list",
        ),
        "hardcoded_secret": RuleSpec(
            Severity.WARNING,
            Category.GUIDELINE,
            False,
            "Read the value from the environment, e.g. `$env.{name}`",
        ),
        "deprecated_command": RuleSpec(
            Severity.WARNING,
            Category.REFERENCE,
            True,
            "Use `{replacement}` instead",
        ),
        "line_too_long": RuleSpec(
            Severity.STYLE,
            Category.STYLE,
            False,
            "Break the pipeline across lines",
        ),
        "command_naming": RuleSpec(
            Severity.STYLE,
            Category.STYLE,
            False,
            "Rename to `{name}`",
        ),
        "variable_naming": RuleSpec(
            Severity.INFO,
            Category.STYLE,
            False,
            "Rename to `{name}`",
        ),
        "trailing_whitespace": RuleSpec(
            Severity.STYLE,
            Category.STYLE,
            True,
            "Remove trailing whitespace",
        ),
        "tab_indentation": RuleSpec(
            Severity.STYLE,
            Category.STYLE,
            True,
            "Indent with spaces",
        ),
    }
)

SECRET_KEYWORDS: frozenset[str] = frozenset(
    {
        "api_key",
        "apikey",
        "secret",
        "password",
        "passwd",
        "token",
        "bearer",
        "private_key",
        "access_key",
        "credential",
    }
)

DEPRECATED_COMMANDS: Mapping[str, str] = MappingProxyType(
    {
        "def-env": "def --env",
        "let-env": "$env.NAME = value",
        "str collect": "str join",
        "size": "str stats",
        "str lpad": "fill --alignment right",
        "str rpad": "fill --alignment left",
        "date format": "format date",
        "date to-record": "into record",
        "into decimal": "into float",
        "fetch": "http get",
        "benchmark": "timeit",
        "build-string": "string interpolation",
        "hash base64": "encode base64",
    }
)

_DEF_RE = re.compile(
    r"^\s*(?P<export>export\s+)?def(?:-env)?\s+(?:--?[\w-]+\s+)*"
    r"(?P<name>\"[^\"]+\"|'[^']+'|`[^`]+`|[^\s\[{]+)"
)
_ASSIGN_RE = re.compile(
    r"^\s*(?:export\s+)?(?:let|mut|const)\s+(?P<name>[A-Za-z_][\w-]*)"
    r"(?:\s*:\s*[\w<>]+)?\s*=\s*(?P<rest>.*)$"
)
_REASSIGN_RE = re.compile(r"^\s*\$(?P<name>[A-Za-z_][\w-]*)\s*=\s*(?P<rest>[^=].*)$")
_QUOTED_LITERAL_RE = re.compile(r"^(?P<quote>[\"'`])(?P<value>.*?)(?P=quote)")
_PARAM_NAME_RE = re.compile(r"^[A-Za-z_][\w-]*\??$")
_KEBAB_WORD_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_CAMEL_RE = re.compile(r"[a-z0-9][A-Z]")
_SUPPRESS_RE = re.compile(r"#\s*nugate:\s*ignore(?:\[(?P<rules>[^\]]*)\])?")
_DEPRECATED_RE = re.compile(
    r"(?:^|[|({;=])\s*(?:export\s+)?(?P<cmd>"
    + "|".join(r"\s+".join(map(re.escape, cmd.split())) for cmd in DEPRECATED_COMMANDS)
    + r")(?![\w:-])"
)

_OPENERS = {"[": "]", "(": ")", "{": "}", "<": ">"}
_CLOSERS = frozenset(_OPENERS.values())
_QUOTES = frozenset("\"'`")


@dataclass(frozen=True)
class ParamToken:
    """One whitespace/comma separated chunk of a parameter list."""

    text: str
    line: int


@dataclass(frozen=True)
class Parameter:
    """A declared parameter."""

    name: str
    line: int
    kind: str  # positional | flag | rest
    typed: bool


@dataclass(frozen=True)
class Declaration:
    """A ``def`` with its parsed signature."""

    name: str
    line: int
    exported: bool
    parameters: tuple[Parameter, ...]
    has_return_type: bool


def _issue(
    rule: str,
    message: str,
    line: int | None,
    column: int | None = None,
    **fmt: str,
) -> Issue:
    spec = RULES[rule]
    return Issue(
        severity=spec.severity,
        rule=rule,
        message=message,
        line=line,
        column=column,
        suggestion=spec.suggestion.format(**fmt) if fmt else spec.suggestion,
        category=spec.category,
        source=SOURCE,
        fixable=spec.fixable,
    )


def code_only(line: str) -> str:
    """Blank out string literal contents and drop a trailing comment.

    Columns are preserved so positions found in the result map back to
    the original line.
    """
    result: list[str] = []
    quote: str | None = None
    for char in line:
        if quote is not None:
            if char == quote:
                quote = None
                result.append(char)
            else:
                result.append(" ")
        elif char in _QUOTES:
            quote = char
            result.append(char)
        elif char == "#":
            break
        else:
            result.append(char)
    return "".join(result)


def _unquote(name: str) -> str:
    if len(name) >= 2 and name[0] == name[-1] and name[0] in _QUOTES:
        return name[1:-1]
    return name


def _read_signature(
    lines: list[str], line_index: int, column: int
) -> tuple[list[tuple[str, int]], bool]:
    """Collect signature characters up to the body brace at depth zero.

    Returns the characters paired with their 1-indexed line numbers and
    whether the body brace was found. Comments are dropped.
    """
    chars: list[tuple[str, int]] = []
    depth = 0
    quote: str | None = None
    last = min(len(lines), line_index + _SIGNATURE_LINE_LIMIT)
    for index in range(line_index, last):
        text = lines[index][column:] if index == line_index else lines[index]
        for char in text:
            if quote is not None:
                if char == quote:
                    quote = None
                chars.append((char, index + 1))
                continue
            if char in _QUOTES:
                quote = char
            elif char == "#":
                break
            elif char in "[(":
                depth += 1
            elif char in "])":
                depth -= 1
            elif char == "{" and depth == 0:
                return chars, True
            chars.append((char, index + 1))
        chars.append(("\n", index + 1))
    return chars, False


def _split_params(chars: list[tuple[str, int]]) -> list[ParamToken]:
    """Split a parameter list into tokens at whitespace/commas at depth zero."""
    tokens: list[ParamToken] = []
    buffer: list[str] = []
    start_line = 0
    stack: list[str] = []
    quote: str | None = None

    def flush() -> None:
        if buffer:
            tokens.append(ParamToken("".join(buffer), start_line))
            buffer.clear()

    for char, line in chars:
        if quote is not None:
            buffer.append(char)
            if char == quote:
                quote = None
            continue
        if not stack and (char.isspace() or char == ","):
            flush()
            continue
        if not buffer:
            start_line = line
        if char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in _CLOSERS and stack and stack[-1] == char:
            stack.pop()
        buffer.append(char)
    flush()
    return tokens


def _skip_annotation(tokens: list[ParamToken], index: int) -> tuple[int, bool]:
    """Step past ``name[: type]``; return next index and whether typed."""
    text = tokens[index].text
    if ":" in text:
        _, _, tail = text.partition(":")
        if tail:
            return index + 1, True
        return min(index + 2, len(tokens)), index + 1 < len(tokens)
    if index + 1 < len(tokens) and tokens[index + 1].text.startswith(":"):
        if tokens[index + 1].text == ":":
            return min(index + 3, len(tokens)), index + 2 < len(tokens)
        return index + 2, True
    return index + 1, False


def _skip_default(tokens: list[ParamToken], index: int) -> int:
    if index < len(tokens) and tokens[index].text.startswith("="):
        return min(index + (1 if tokens[index].text != "=" else 2), len(tokens))
    return index


def parse_parameters(chars: list[tuple[str, int]]) -> tuple[Parameter, ...]:
    """Parse the bracketed parameter list of a signature."""
    tokens = _split_params(chars)
    params: list[Parameter] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        text = token.text
        if text.startswith("--") or (len(text) > 1 and text[0] == "-" and text[1].isalpha()):
            name = text.split(":", 1)[0].split("(", 1)[0]
            # short form in its own token: `--verbose (-v): bool`
            if index + 1 < len(tokens) and tokens[index + 1].text.startswith("("):
                index += 1
            index, typed = _skip_annotation(tokens, index)
            kind = "flag"
        elif text.startswith("..."):
            name = text[3:].split(":", 1)[0]
            index, typed = _skip_annotation(tokens, index)
            kind = "rest"
        else:
            name = text.split(":", 1)[0]
            if not _PARAM_NAME_RE.match(name):
                index += 1
                continue
            index, typed = _skip_annotation(tokens, index)
            kind = "positional"
        index = _skip_default(tokens, index)
        params.append(Parameter(name=name.rstrip("?"), line=token.line, kind=kind, typed=typed))
    return tuple(params)


def find_declarations(lines: list[str]) -> list[Declaration]:
    """Locate every ``def`` and parse its signature.

    Declarations whose body brace cannot be found are skipped; malformed
    source is the syntax check's concern.
    """
    declarations: list[Declaration] = []
    for index, line in enumerate(lines):
        found = _DEF_RE.match(line)
        if found is None:
            continue
        chars, complete = _read_signature(lines, index, found.end())
        if not complete:
            continue

        text = "".join(char for char, _ in chars)
        open_at = text.find("[")
        params: tuple[Parameter, ...] = ()
        after = text
        if open_at != -1:
            depth = 0
            close_at = -1
            for position in range(open_at, len(text)):
                if text[position] == "[":
                    depth += 1
                elif text[position] == "]":
                    depth -= 1
                    if depth == 0:
                        close_at = position
                        break
            if close_at != -1:
                params = parse_parameters(chars[open_at + 1 : close_at])
                after = text[close_at + 1 :]

        declarations.append(
            Declaration(
                name=_unquote(found.group("name")),
                line=index + 1,
                exported=found.group("export") is not None,
                parameters=params,
                has_return_type="->" in after,
            )
        )
    return declarations


def scan_return_types(declarations: list[Declaration]) -> list[Issue]:
    """Exported definitions must declare their input/output types."""
    return [
        _issue(
            "missing_return_type",
            f"Missing return type annotation for '{decl.name}'",
            decl.line,
        )
        for decl in declarations
        if decl.exported and not decl.has_return_type
    ]


def scan_parameter_types(declarations: list[Declaration]) -> list[Issue]:
    """Positional parameters of exported definitions must be typed."""
    issues = []
    for decl in declarations:
        if not decl.exported:
            continue
        for param in decl.parameters:
            if param.kind == "positional" and not param.typed:
                issues.append(
                    _issue(
                        "missing_param_type",
                        f"Missing type annotation for parameter '{param.name}' in '{decl.name}'",
                        param.line,
                    )
                )
    return issues


def has_doc_comment(lines: list[str], line: int, window: int) -> bool:
    """Whether a comment sits above ``line`` within ``window`` lines.

    Blank lines and ``@attribute`` lines are stepped over; any other line
    ends the search.
    """
    index = line - 2
    examined = 0
    while index >= 0 and examined < window:
        text = lines[index].strip()
        if text.startswith("#") and not text.startswith("#!"):
            return True
        if text and not text.startswith("@"):
            return False
        index -= 1
        examined += 1
    return False


def scan_documentation(
    lines: list[str], declarations: list[Declaration], window: int, entry_point: str
) -> list[Issue]:
    """Exported definitions and the entry point need a doc comment."""
    return [
        _issue(
            "missing_documentation",
            f"Missing documentation comment for '{decl.name}'",
            decl.line,
        )
        for decl in declarations
        if (decl.exported or decl.name == entry_point)
        and not has_doc_comment(lines, decl.line, window)
    ]


def scan_help_flag(declarations: list[Declaration], entry_point: str) -> list[Issue]:
    """The entry point must expose ``--help``."""
    issues = []
    for decl in declarations:
        if decl.name != entry_point:
            continue
        if not any(p.kind == "flag" and p.name == "--help" for p in decl.parameters):
            issues.append(
                _issue(
                    "missing_help_flag",
                    f"Entry point '{decl.name}' does not declare a --help flag",
                    decl.line,
                )
            )
    return issues


def _is_secret_name(name: str) -> bool:
    parts = _snake(name).replace("-", "_").split("_")
    for keyword in SECRET_KEYWORDS:
        wanted = keyword.split("_")
        for start in range(len(parts) - len(wanted) + 1):
            if parts[start : start + len(wanted)] == wanted:
                return True
    return False


def scan_secrets(lines: list[str]) -> list[Issue]:
    """Assignments of quoted literals to secret-looking names."""
    issues = []
    for number, line in enumerate(lines, start=1):
        if line.lstrip().startswith("#") or "$env" in line:
            continue
        found = _ASSIGN_RE.match(line) or _REASSIGN_RE.match(line)
        if found is None or not _is_secret_name(found.group("name")):
            continue
        literal = _QUOTED_LITERAL_RE.match(found.group("rest").strip())
        if literal is None or not literal.group("value"):
            continue
        name = found.group("name")
        issues.append(
            _issue(
                "hardcoded_secret",
                f"Possible hardcoded secret assigned to '{name}'",
                number,
                name=_snake(name).upper().replace("-", "_"),
            )
        )
    return issues


def scan_deprecated(lines: list[str]) -> list[Issue]:
    """Commands that were renamed or removed."""
    issues = []
    for number, line in enumerate(lines, start=1):
        for found in _DEPRECATED_RE.finditer(code_only(line)):
            command = " ".join(found.group("cmd").split())
            replacement = DEPRECATED_COMMANDS[command]
            issues.append(
                _issue(
                    "deprecated_command",
                    f"'{command}' is deprecated",
                    number,
                    found.start("cmd") + 1,
                    replacement=replacement,
                )
            )
    return issues


def scan_line_length(lines: list[str], max_length: int) -> list[Issue]:
    """Lines longer than ``max_length`` characters."""
    return [
        _issue(
            "line_too_long",
            f"Line is {len(line)} characters long (max {max_length})",
            number,
            max_length + 1,
        )
        for number, line in enumerate(lines, start=1)
        if len(line) > max_length
    ]


def _kebab(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", name).replace("_", "-").lower()


def _snake(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name).lower()


def scan_naming(lines: list[str], declarations: list[Declaration]) -> list[Issue]:
    """Commands in kebab-case, variables in snake_case."""
    issues = []
    for decl in declarations:
        if not all(_KEBAB_WORD_RE.match(word) for word in decl.name.split()):
            issues.append(
                _issue(
                    "command_naming",
                    f"Command '{decl.name}' should use kebab-case",
                    decl.line,
                    name=_kebab(decl.name),
                )
            )
    for number, line in enumerate(lines, start=1):
        found = _ASSIGN_RE.match(line)
        if found is not None and _CAMEL_RE.search(found.group("name")):
            name = found.group("name")
            issues.append(
                _issue(
                    "variable_naming",
                    f"Variable '{name}' should use snake_case",
                    number,
                    name=_snake(name),
                )
            )
    return issues


def scan_spacing(lines: list[str]) -> list[Issue]:
    """Trailing whitespace and tab indentation."""
    issues = []
    for number, line in enumerate(lines, start=1):
        if line != line.rstrip():
            issues.append(
                _issue(
                    "trailing_whitespace",
                    "Trailing whitespace",
                    number,
                    len(line.rstrip()) + 1,
                )
            )
        if line.startswith("\t"):
            issues.append(_issue("tab_indentation", "Line is indented with tabs", number, 1))
    return issues


def _suppressed(issue: Issue, lines: list[str]) -> bool:
    if not issue.line or issue.line > len(lines):
        return False
    found = _SUPPRESS_RE.search(lines[issue.line - 1])
    if found is None:
        return False
    rules = found.group("rules")
    if rules is None:
        return True
    return issue.rule in {r.strip() for r in rules.split(",")}


class HeuristicScanner:
    """Runs every heuristic pass over a file's content."""

    def __init__(self, config: GateConfig | None = None) -> None:
        """Initialize scanner.

        Args:
            config: Gate configuration (defaults if None)
        """
        self.config = config or GateConfig()

    def scan(self, content: str) -> list[Issue]:
        """Scan file content.

        Args:
            content: Nushell source text

        Returns:
            Issues from every pass, minus disabled and suppressed rules
        """
        config = self.config
        lines = content.splitlines()
        declarations = find_declarations(lines)

        issues = [
            *scan_return_types(declarations),
            *scan_parameter_types(declarations),
            *scan_documentation(lines, declarations, config.doc_window, config.entry_point),
            *scan_help_flag(declarations, config.entry_point),
            *scan_secrets(lines),
            *scan_deprecated(lines),
            *scan_line_length(lines, config.max_line_length),
            *scan_naming(lines, declarations),
            *scan_spacing(lines),
        ]
        return [
            issue
            for issue in issues
            if self.config.is_enabled(issue.rule) and not _suppressed(issue, lines)
        ]


def scan_content(content: str, config: GateConfig | None = None) -> list[Issue]:
    """Helper function to run all heuristic scanners."""
    return HeuristicScanner(config).scan(content)
