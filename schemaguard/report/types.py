"""Report data model shared by the text, JSON and Markdown formatters."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import timedelta

# Any incompatible change to the JSON layout must bump this value.
SCHEMA_VERSION = "1"


class Verdict(str, enum.Enum):
    """Red/yellow/green classification of a whole run."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    def __str__(self) -> str:
        return self.value

    def rank(self) -> int:
        """Integer rank for picking the worst verdict; higher is worse."""
        return _VERDICT_RANK.get(self.value, 0)

    def emoji(self) -> str:
        """Icon used for this verdict in text and Markdown output."""
        return _VERDICT_EMOJI.get(self.value, "⚪")

    def label(self) -> str:
        """Short human label for the verdict."""
        return _VERDICT_LABEL.get(self.value, "Unknown")

    def exit_code(self) -> int:
        """Process exit code: green 0, yellow 1, red 2."""
        return _VERDICT_EXIT.get(self.value, 2)


_VERDICT_RANK = {"green": 0, "yellow": 1, "red": 2}
_VERDICT_EMOJI = {"green": "🟢", "yellow": "🟡", "red": "🔴"}
_VERDICT_LABEL = {"green": "Safe", "yellow": "Caution", "red": "Stop"}
_VERDICT_EXIT = {"green": 0, "yellow": 1, "red": 2}


class Severity(str, enum.Enum):
    """Per-finding classification."""

    INFO = "info"
    CAUTION = "caution"
    STOP = "stop"

    def __str__(self) -> str:
        return self.value

    def rank(self) -> int:
        """Integer rank for max-severity computation; higher is worse."""
        return _SEVERITY_RANK.get(self.value, 0)


_SEVERITY_RANK = {"info": 0, "caution": 1, "stop": 2}


class Group(str, enum.Enum):
    """Finding category."""

    MIGRATION_EXECUTION = "migration_execution"
    LOCK_RISK = "lock_risk"
    QUERY_PLAN = "query_plan_regressions"

    def __str__(self) -> str:
        return self.value

    def title(self) -> str:
        """Human heading for the group."""
        return _GROUP_TITLE.get(self.value, self.value)


_GROUP_TITLE = {
    "migration_execution": "Migration Execution",
    "lock_risk": "Lock Risk",
    "query_plan_regressions": "Query Plan Regressions",
}

# Display order; a migration-level failure is always shown first.
CANONICAL_GROUP_ORDER: tuple[Group, ...] = (
    Group.MIGRATION_EXECUTION,
    Group.LOCK_RISK,
    Group.QUERY_PLAN,
)


@dataclass
class Finding:
    """Normalized per-issue record consumed by every formatter."""

    group: Group
    severity: Severity
    kind: str = ""
    object: str = ""
    impact: str = ""
    reason: str = ""


@dataclass
class Footer:
    """Run-level metadata; zero values are omitted by formatters."""

    tool_version: str = ""
    run_duration: timedelta = timedelta(0)
    restore_duration: timedelta = timedelta(0)
    migration_duration: timedelta = timedelta(0)
    shadow_db_image: str = ""
    shadow_db_size_bytes: int = 0
    docs_url: str = ""


@dataclass
class Report:
    """The single in-memory structure every formatter consumes."""

    schema_version: str = SCHEMA_VERSION
    verdict: Verdict = Verdict.GREEN
    summary: str = ""
    findings: list[Finding] = field(default_factory=list)
    footer: Footer = field(default_factory=Footer)

    def findings_by_group(self, group: Group) -> list[Finding]:
        """Findings in the given group, in their existing order."""
        return [f for f in self.findings if f.group == group]