"""Plan-only EXPLAIN capture for the configured top queries."""

from __future__ import annotations

import json
from contextlib import closing
from typing import Any, Iterable, Optional

from schemaguard.planregression.config import TopQuery
from schemaguard.planregression.finding import CaptureResult
from schemaguard.planregression.plan import PlanNode, parse_explain_json


def capture(conn: Any, queries: Iterable[TopQuery]) -> list[CaptureResult]:
    """EXPLAIN each query on a DB-API connection, one result per query in order.

    A query whose EXPLAIN fails is recorded with its error; the loop
    carries on. Queries are never executed, only planned.
    """
    results: list[CaptureResult] = []
    for query in queries:
        result = CaptureResult(query_id=query.id, sql=query.sql)
        try:
            result.plan = explain_one(conn, query.sql)
        except Exception as exc:  # a broken query is a finding, not a tool error
            result.error = exc
        results.append(result)
    return results


def explain_one(conn: Any, sql: str) -> Optional[PlanNode]:
    """Run a plan-only EXPLAIN (FORMAT JSON) of sql and return the root plan."""
    statement = f"EXPLAIN (FORMAT JSON) {sql}"
    with closing(conn.cursor()) as cursor:
        cursor.execute(statement)
        row = cursor.fetchone()
    if row is None:
        raise LookupError("EXPLAIN returned no rows")
    raw = row[0]
    if isinstance(raw, (list, dict)):
        raw = json.dumps(raw)
    elif isinstance(raw, memoryview):
        raw = raw.tobytes()
    return parse_explain_json(raw)