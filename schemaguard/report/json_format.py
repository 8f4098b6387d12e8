"""JSON report formatter with a stable, versioned layout."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

from schemaguard.report.types import Finding, Footer, Report


def _milliseconds(duration: timedelta) -> int:
    micros = (duration.days * 86_400 + duration.seconds) * 1_000_000 + duration.microseconds
    ms = abs(micros) // 1000
    return -ms if micros < 0 else ms


def _finding(finding: Finding) -> dict[str, Any]:
    data: dict[str, Any] = {
        "group": finding.group.value,
        "severity": finding.severity.value,
        "kind": finding.kind,
        "object": finding.object,
    }
    if finding.impact:
        data["impact"] = finding.impact
    data["reason"] = finding.reason
    return data


def _footer(footer: Footer) -> dict[str, Any]:
    candidates = (
        ("toolVersion", footer.tool_version),
        ("runDurationMs", _milliseconds(footer.run_duration)),
        ("restoreDurationMs", _milliseconds(footer.restore_duration)),
        ("migrationDurationMs", _milliseconds(footer.migration_duration)),
        ("shadowDbImage", footer.shadow_db_image),
        ("shadowDbSizeBytes", footer.shadow_db_size_bytes),
        ("docsUrl", footer.docs_url),
    )
    return {key: value for key, value in candidates if value}


def format_json(report: Report) -> bytes:
    """Render a report as pretty-printed UTF-8 JSON ending in a newline.

    Durations are written as integer milliseconds; findings is always an array.
    """
    document = {
        "schemaVersion": report.schema_version,
        "verdict": report.verdict.value,
        "summary": report.summary,
        "findings": [_finding(f) for f in report.findings or []],
        "footer": _footer(report.footer),
    }
    text = json.dumps(document, indent=2, ensure_ascii=False)
    text = text.replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")
    return (text + "\n").encode("utf-8")