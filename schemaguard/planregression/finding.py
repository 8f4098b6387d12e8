"""Plan-regression finding types, thresholds and capture results."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from schemaguard.planregression.plan import PlanNode


class Severity(enum.IntEnum):
    """Severity of a plan-regression finding; higher is worse."""

    INFO = 0
    CAUTION = 1
    STOP = 2

    def __str__(self) -> str:
        return self.name.lower()


class FindingKind(enum.IntEnum):
    """Why the analyzer flagged a query."""

    # Top-level estimated cost rose past the caution or stop threshold.
    COST_INCREASE = 0
    # Top-level estimated rows rose past the caution or stop threshold.
    ROWS_INCREASE = 1
    # A scan on a relation moved to a less efficient mode, short of Seq Scan.
    SCAN_DOWNGRADE = 2
    # A scan that used an index in the baseline is a Seq Scan afterwards.
    NEW_SEQ_SCAN = 3
    # The query cannot be EXPLAINed against the post-migration schema.
    QUERY_BROKEN = 4
    # The query could not be EXPLAINed even before the migration ran.
    BASELINE_BROKEN = 5


@dataclass
class Finding:
    """One plan-regression finding for one query."""

    query_id: str
    kind: FindingKind
    severity: Severity
    reason: str = ""
    baseline_cost: float = 0.0
    post_cost: float = 0.0
    baseline_rows: float = 0.0
    post_rows: float = 0.0
    relation: str = ""
    baseline_scan: str = ""
    post_scan: str = ""
    error_message: str = ""


@dataclass(frozen=True)
class Thresholds:
    """Caution/stop thresholds applied to plan cost and row estimates."""

    caution_cost_ratio: float = 2.0
    stop_cost_ratio: float = 5.0
    min_cost_delta: float = 100.0
    caution_rows_ratio: float = 10.0
    stop_rows_ratio: float = 100.0
    min_rows_delta: float = 1000.0


def default_thresholds() -> Thresholds:
    """Return the committed default thresholds."""
    return Thresholds(
        caution_cost_ratio=2.0,
        stop_cost_ratio=5.0,
        min_cost_delta=100.0,
        caution_rows_ratio=10.0,
        stop_rows_ratio=100.0,
        min_rows_delta=1000.0,
    )


@dataclass
class CaptureResult:
    """Outcome of a plan-only EXPLAIN of one query; plan is None on error."""

    query_id: str
    sql: str = ""
    plan: Optional["PlanNode"] = None
    error: Optional[BaseException] = None

    def has_error(self) -> bool:
        """Whether the EXPLAIN call itself failed."""
        return self.error is not None