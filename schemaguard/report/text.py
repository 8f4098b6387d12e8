"""Plain-text report formatter for terminal output."""

from __future__ import annotations

from datetime import timedelta

from schemaguard.report.types import CANONICAL_GROUP_ORDER, Finding, Footer, Report

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000
_NS_PER_MIN = 60 * _NS_PER_S


def _to_ns(duration: timedelta) -> int:
    micros = (duration.days * 86_400 + duration.seconds) * 1_000_000 + duration.microseconds
    return micros * _NS_PER_US


def _rounded(duration: timedelta, unit: timedelta) -> timedelta:
    """Round to a multiple of unit, halves away from zero."""
    ns, m = _to_ns(duration), _to_ns(unit)
    if m <= 0:
        return duration
    sign = -1 if ns < 0 else 1
    n = abs(ns)
    r = n % m
    n = n - r if r + r < m else n + m - r
    return timedelta(microseconds=sign * n // _NS_PER_US)


def _fraction(value: int, scale: int) -> str:
    whole, rem = divmod(value, scale)
    if not rem:
        return str(whole)
    digits = str(rem).zfill(len(str(scale)) - 1).rstrip("0")
    return f"{whole}.{digits}"


def format_duration(duration: timedelta) -> str:
    """Render a duration compactly, e.g. "1.5s", "500ms", "1m30s"."""
    ns = _to_ns(duration)
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    n = abs(ns)
    if n < _NS_PER_S:
        if n < _NS_PER_US:
            return f"{sign}{n}ns"
        if n < _NS_PER_MS:
            return f"{sign}{_fraction(n, _NS_PER_US)}µs"
        return f"{sign}{_fraction(n, _NS_PER_MS)}ms"
    minutes, secs = divmod(n, _NS_PER_MIN)
    text = _fraction(secs, _NS_PER_S) + "s"
    if minutes:
        hours, mins = divmod(minutes, 60)
        text = f"{mins}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return sign + text


def human_bytes(n: int) -> str:
    """Render a byte count as a rough human-readable size."""
    unit = 1024
    if n < unit:
        return f"{n} B"
    div, exp = unit, 0
    x = n // unit
    while x >= unit:
        div *= unit
        exp += 1
        x //= unit
    units = ("KB", "MB", "GB", "TB")
    return f"{n / div:.1f} {units[exp]}"


def format_text(report: Report) -> str:
    """Render a report as scannable plain text."""
    verdict = report.verdict
    parts = [f"{verdict.emoji()} {verdict.label().upper()} — {report.summary}\n\n"]

    for group in CANONICAL_GROUP_ORDER:
        findings = report.findings_by_group(group)
        if not findings:
            continue
        parts.append(f"{group.title()}\n")
        parts.extend(_text_finding(f) for f in findings)
        parts.append("\n")

    if not report.findings:
        parts.append("No findings. Migration is safe to merge.\n\n")

    parts.append("───\n")
    parts.append(_text_footer(report.footer) + "\n")
    return "".join(parts)


def _text_finding(finding: Finding) -> str:
    header = f"  [{finding.severity.value}] {finding.object}"
    if finding.impact:
        header += " — " + finding.impact
    lines = header + "\n"
    if finding.reason:
        lines += f"        {finding.reason}\n"
    return lines


def _text_footer(footer: Footer) -> str:
    parts = []
    if footer.tool_version:
        parts.append("SchemaGuard " + footer.tool_version)
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
        image = "shadow " + footer.shadow_db_image
        if footer.shadow_db_size_bytes > 0:
            image += f" ({human_bytes(footer.shadow_db_size_bytes)})"
        parts.append(image)
    line = " · ".join(parts)
    if footer.docs_url:
        if line:
            line += "\n"
        line += footer.docs_url
    return line