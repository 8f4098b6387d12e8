"""Diff baseline and post-migration plans into regression findings."""

from __future__ import annotations

import json
from typing import Iterable, Optional

from schemaguard.planregression.finding import (
    CaptureResult,
    Finding,
    FindingKind,
    Severity,
    Thresholds,
)
from schemaguard.planregression.plan import PlanNode, scan_rank, scans_by_relation


def analyze(
    baseline: Iterable[CaptureResult],
    post: Iterable[CaptureResult],
    thresholds: Thresholds,
) -> list[Finding]:
    """Compare baseline and post captures and return sorted findings.

    Queries present on only one side are ignored. Findings are ordered
    by severity (worst first), then query id, then kind.
    """
    baseline = list(baseline)
    post = list(post)
    if not baseline or not post:
        return []
    post_by_id = {p.query_id: p for p in post}

    findings: list[Finding] = []
    for b in baseline:
        p = post_by_id.get(b.query_id)
        if p is not None:
            findings.extend(_compare_one(b, p, thresholds))

    findings.sort(key=lambda f: (-int(f.severity), f.query_id, int(f.kind)))
    return findings


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _cost(plan: Optional[PlanNode]) -> float:
    return plan.total_cost() if plan is not None else 0.0


def _rows(plan: Optional[PlanNode]) -> float:
    return plan.plan_rows() if plan is not None else 0.0


def _compare_one(b: CaptureResult, p: CaptureResult, t: Thresholds) -> list[Finding]:
    if p.has_error():
        return [
            Finding(
                query_id=p.query_id,
                kind=FindingKind.QUERY_BROKEN,
                severity=Severity.STOP,
                reason=f"post-migration EXPLAIN failed: {p.error}",
                error_message=str(p.error),
            )
        ]
    if b.has_error():
        return [
            Finding(
                query_id=b.query_id,
                kind=FindingKind.BASELINE_BROKEN,
                severity=Severity.INFO,
                reason=(
                    f"config issue: baseline EXPLAIN of query {_quote(b.query_id)} "
                    "failed before the migration ran — fix or remove it in "
                    f"schemaguard.yaml: {b.error}"
                ),
                error_message=str(b.error),
            )
        ]

    b_cost, p_cost = _cost(b.plan), _cost(p.plan)
    b_rows, p_rows = _rows(b.plan), _rows(p.plan)

    out: list[Finding] = []
    cost = _check_cost(b.query_id, b_cost, p_cost, t)
    if cost is not None:
        out.append(cost)
    rows = _check_rows(b.query_id, b_rows, p_rows, t)
    if rows is not None:
        out.append(rows)
    out.extend(_check_scans(b.query_id, b.plan, p.plan, b_cost, p_cost, b_rows, p_rows))
    return out


def _ratio_severity(ratio: float, caution: float, stop: float) -> Optional[Severity]:
    if ratio >= stop:
        return Severity.STOP
    if ratio >= caution:
        return Severity.CAUTION
    return None


def _check_cost(query_id: str, b_cost: float, p_cost: float, t: Thresholds) -> Optional[Finding]:
    if b_cost <= 0 or p_cost <= b_cost:
        return None
    if p_cost - b_cost < t.min_cost_delta:
        return None
    ratio = p_cost / b_cost
    severity = _ratio_severity(ratio, t.caution_cost_ratio, t.stop_cost_ratio)
    if severity is None:
        return None
    return Finding(
        query_id=query_id,
        kind=FindingKind.COST_INCREASE,
        severity=severity,
        reason=f"estimated cost rose {ratio:.1f}x ({b_cost:.0f} → {p_cost:.0f})",
        baseline_cost=b_cost,
        post_cost=p_cost,
    )


def _check_rows(query_id: str, b_rows: float, p_rows: float, t: Thresholds) -> Optional[Finding]:
    if b_rows <= 0 or p_rows <= b_rows:
        return None
    if p_rows - b_rows < t.min_rows_delta:
        return None
    ratio = p_rows / b_rows
    severity = _ratio_severity(ratio, t.caution_rows_ratio, t.stop_rows_ratio)
    if severity is None:
        return None
    return Finding(
        query_id=query_id,
        kind=FindingKind.ROWS_INCREASE,
        severity=severity,
        reason=f"estimated rows rose {ratio:.1f}x ({b_rows:.0f} → {p_rows:.0f})",
        baseline_rows=b_rows,
        post_rows=p_rows,
    )


def _check_scans(
    query_id: str,
    b_plan: Optional[PlanNode],
    p_plan: Optional[PlanNode],
    b_cost: float,
    p_cost: float,
    b_rows: float,
    p_rows: float,
) -> list[Finding]:
    b_scans = scans_by_relation(b_plan)
    p_scans = scans_by_relation(p_plan)

    out: list[Finding] = []
    for rel in sorted(p_scans):
        post_scan = p_scans[rel]
        baseline_scan = b_scans.get(rel)
        if baseline_scan is None:
            continue
        if scan_rank(post_scan) <= scan_rank(baseline_scan):
            continue
        if post_scan == "Seq Scan":
            kind = FindingKind.NEW_SEQ_SCAN
            severity = Severity.STOP
            reason = f"scan on {rel} regressed from {baseline_scan} to Seq Scan"
        else:
            kind = FindingKind.SCAN_DOWNGRADE
            severity = Severity.CAUTION
            reason = f"scan on {rel} downgraded from {baseline_scan} to {post_scan}"
        out.append(
            Finding(
                query_id=query_id,
                kind=kind,
                severity=severity,
                reason=reason,
                baseline_cost=b_cost,
                post_cost=p_cost,
                baseline_rows=b_rows,
                post_rows=p_rows,
                relation=rel,
                baseline_scan=baseline_scan,
                post_scan=post_scan,
            )
        )
    return out