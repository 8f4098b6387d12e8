"""PR-comment-sized Markdown report formatter with graceful truncation."""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

from schemaguard.report.text import _rounded, format_duration, human_bytes
from schemaguard.report.types import CANONICAL_GROUP_ORDER, Finding, Footer, Report

# Maximum size in bytes of the Markdown output before findings are dropped.
DEFAULT_MARKDOWN_BUDGET = 55000

# Notice appended when findings were dropped; formatted with the count.
TRUNCATION_FOOTER = (
    "⚠️ **Report truncated** — {} additional lower-severity finding(s) omitted "
    "to fit the PR comment size budget."
)

_NO_FINDINGS = "No findings. Migration is safe to merge."


def _size(text: str) -> int:
    return len(text.encode("utf-8"))


def format_markdown(report: Report, budget: int = DEFAULT_MARKDOWN_BUDGET) -> str:
    """Render a report as Markdown within budget bytes.

    If the full output is too large, findings are dropped from the tail
    (lowest severity first) and a truncation notice is appended. The
    given report is not modified.
    """
    out = _render(report, 0)
    if _size(out) <= budget:
        return out

    total = len(report.findings)
    for kept in range(total - 1, -1, -1):
        candidate = _render(replace(report, findings=report.findings[:kept]), total - kept)
        if _size(candidate) <= budget:
            return candidate

    return _render_header_only(report, total)


def _heading(report: Report) -> str:
    verdict = report.verdict
    return f"## {verdict.emoji()} {verdict.label()} — {report.summary}\n\n"


def _render(report: Report, dropped: int) -> str:
    parts = [_heading(report)]
    for group in CANONICAL_GROUP_ORDER:
        findings = report.findings_by_group(group)
        if not findings:
            continue
        parts.append(f"### {group.title()}\n\n")
        parts.append(_table(findings))
        parts.append("\n")

    if not report.findings and dropped == 0:
        parts.append(_NO_FINDINGS + "\n\n")

    if dropped > 0:
        parts.append(TRUNCATION_FOOTER.format(dropped) + "\n\n")

    parts.append(_footer(report.footer) + "\n")
    return "".join(parts)


def _render_header_only(report: Report, dropped: int) -> str:
    return (
        _heading(report)
        + TRUNCATION_FOOTER.format(dropped)
        + "\n\n"
        + _footer(report.footer)
        + "\n"
    )


def _table(findings: list[Finding]) -> str:
    rows = ["| Severity | Object | Impact | Reason |\n", "|---|---|---|---|\n"]
    rows.extend(
        f"| {_escape(f.severity.value)} | {_escape(f.object)} | "
        f"{_escape(f.impact)} | {_escape(f.reason)} |\n"
        for f in findings
    )
    return "".join(rows)


def _escape(text: str) -> str:
    """Keep pipes and newlines from breaking the table layout."""
    return text.replace("|", "\\|").replace("\n", " ").replace("\r", "")


def _footer(footer: Footer) -> str:
    parts = []
    if footer.tool_version:
        parts.append(f"SchemaGuard `{footer.tool_version}`")
    if footer.run_duration > timedelta(0):
        parts.append("run " + format_duration(_rounded(footer.run_duration, timedelta(milliseconds=10))))
    if footer.migration_duration > timedelta(0):
        parts.append(
            "migration " + format_duration(_rounded(footer.migration_duration, timedelta(milliseconds=1)))
        )
    if footer.restore_duration > timedelta(0):
        parts.append(
            "restore " + format_duration(_rounded(footer.restore_duration, timedelta(milliseconds=1)))
        )
    if footer.shadow_db_image:
        image = f"shadow `{footer.shadow_db_image}`"
        if footer.shadow_db_size_bytes > 0:
            image += f" ({human_bytes(footer.shadow_db_size_bytes)})"
        parts.append(image)
    line = "_" + " · ".join(parts) + "_" if parts else ""
    if footer.docs_url:
        if line:
            line += "\n\n"
        line += f"[Docs]({footer.docs_url})"
    return line