"""Deduplication and aggregation of validator results."""

from collections.abc import Iterable

from nugate.validation.models import AggregateReport, Issue, Severity, ValidationResult

DEDUP_PREFIX_LENGTH = 50

CRITICAL_BUCKET = frozenset({Severity.CRITICAL, Severity.ERROR, Severity.REQUIRED})
WARNING_BUCKET = frozenset({Severity.WARNING})
STYLE_BUCKET = frozenset({Severity.STYLE, Severity.INFO})

FIX_COMMAND = "nugate fix"


def dedupe_key(issue: Issue) -> tuple[int, str]:
    """Identity of a defect: line plus normalised message prefix."""
    return issue.sort_line, issue.message.strip().lower()[:DEDUP_PREFIX_LENGTH]


def dedupe(issues: Iterable[Issue]) -> list[Issue]:
    """Drop issues describing an already-seen defect.

    Order-preserving; the first occurrence of each key wins.
    """
    seen: set[tuple[int, str]] = set()
    unique: list[Issue] = []
    for issue in issues:
        key = dedupe_key(issue)
        if key in seen:
            continue
        seen.add(key)
        unique.append(issue)
    return unique


def _bucket(issues: list[Issue], severities: frozenset[Severity]) -> list[Issue]:
    # sorted() is stable, so ties keep input order
    return sorted((i for i in issues if i.severity in severities), key=lambda i: i.sort_line)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def summarize(critical: int, warnings: int, style: int) -> str:
    """Comma-joined pluralised counts, or "No issues found".

    Args:
        critical: Issues in the critical bucket
        warnings: Issues in the warnings bucket
        style: Issues in the style bucket

    Returns:
        Summary line
    """
    parts = []
    if critical:
        parts.append(_plural(critical, "critical issue"))
    if warnings:
        parts.append(_plural(warnings, "warning"))
    if style:
        parts.append(_plural(style, "style issue"))
    return ", ".join(parts) if parts else "No issues found"


def format_report(
    file: str,
    critical: list[Issue],
    warnings: list[Issue],
    style: list[Issue],
    summary: str,
) -> str:
    """Build the human-readable report message.

    Args:
        file: Target file path
        critical: Critical bucket
        warnings: Warnings bucket
        style: Style bucket
        summary: Summary line

    Returns:
        Multi-section message text
    """
    if critical:
        lines = [f"❌ Nushell validation failed for {file}"]
    else:
        lines = [f"✅ Nushell validation passed for {file}"]

    for title, bucket in (
        ("Critical issues", critical),
        ("Warnings", warnings),
        ("Style", style),
    ):
        if not bucket:
            continue
        lines.append("")
        lines.append(f"{title}:")
        lines.extend(f"  {issue.render()}" for issue in bucket)

    lines.append("")
    lines.append(f"Summary: {summary}")

    if any(issue.fixable for issue in [*critical, *warnings]):
        lines.append(f"Run `{FIX_COMMAND} {file}` to apply automatic fixes.")

    return "\n".join(lines)


def aggregate_issues(file: str, issues: Iterable[Issue]) -> AggregateReport:
    """Deduplicate, bucket and summarise a flat issue list.

    Args:
        file: Target file path
        issues: Issues in deterministic validator order

    Returns:
        AggregateReport
    """
    unique = dedupe(issues)
    critical = _bucket(unique, CRITICAL_BUCKET)
    warnings = _bucket(unique, WARNING_BUCKET)
    style = _bucket(unique, STYLE_BUCKET)
    summary = summarize(len(critical), len(warnings), len(style))

    return AggregateReport(
        passed=not critical,
        file=file,
        critical=critical,
        warnings=warnings,
        style=style,
        summary=summary,
        total_issues=len(critical) + len(warnings) + len(style),
        message=format_report(file, critical, warnings, style, summary),
    )


def aggregate(results: list[ValidationResult], file: str | None = None) -> AggregateReport:
    """Combine validator results into one report.

    Args:
        results: Validator results, in fixed validator order
        file: Target file path (defaults to the first result's file)

    Returns:
        AggregateReport
    """
    if file is None:
        file = results[0].file if results else ""

    flattened: list[Issue] = []
    for result in results:
        for issue in [*result.errors, *result.warnings]:
            if issue.source != result.source:
                issue = issue.model_copy(update={"source": result.source})
            flattened.append(issue)
    return aggregate_issues(file, flattened)
