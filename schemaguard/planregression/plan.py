"""Loose view of a PostgreSQL EXPLAIN (FORMAT JSON) plan tree."""

from __future__ import annotations

import json
from typing import Optional, Union

_SCAN_RANKS = {
    "Index Only Scan": 0,
    "Index Scan": 1,
    "Bitmap Heap Scan": 2,
    "Bitmap Index Scan": 2,
    "Seq Scan": 3,
}


def _numeric(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    # Strings (older servers) and anything else count as zero.
    return 0.0


class PlanNode(dict):
    """One node of an EXPLAIN plan; missing fields are tolerated."""

    def node_type(self) -> str:
        value = self.get("Node Type")
        return value if isinstance(value, str) else ""

    def total_cost(self) -> float:
        return _numeric(self.get("Total Cost"))

    def plan_rows(self) -> float:
        return _numeric(self.get("Plan Rows"))

    def relation_name(self) -> str:
        """Schema-qualified relation scanned by this node, or ""."""
        rel = self.get("Relation Name")
        if not isinstance(rel, str) or not rel:
            return ""
        schema = self.get("Schema")
        if not isinstance(schema, str) or not schema:
            return rel
        return f"{schema}.{rel}"

    def children(self) -> list["PlanNode"]:
        raw = self.get("Plans")
        if not isinstance(raw, list):
            return []
        return [PlanNode(child) for child in raw if isinstance(child, dict)]


def parse_explain_json(raw: Union[bytes, str]) -> Optional[PlanNode]:
    """Parse EXPLAIN (FORMAT JSON) output and return the root plan node.

    Returns None when the array is empty or holds no "Plan" object.
    Raises ValueError on malformed input.
    """
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("EXPLAIN JSON must be an array of objects")
    for item in data:
        if item is not None and not isinstance(item, dict):
            raise ValueError("EXPLAIN JSON must be an array of objects")
    if not data or data[0] is None:
        return None
    plan = data[0].get("Plan")
    if not isinstance(plan, dict):
        return None
    return PlanNode(plan)


def scan_rank(node_type: str) -> int:
    """Rank scan modes from best (0) to worst (3); -1 for non-scans."""
    return _SCAN_RANKS.get(node_type, -1)


def is_scan_node(node_type: str) -> bool:
    """Whether the node type is a relation-reading scan."""
    return node_type in _SCAN_RANKS


def scans_by_relation(root: Optional[PlanNode]) -> dict[str, str]:
    """Map each scanned relation to the worst scan mode seen on it."""
    result: dict[str, str] = {}
    if root is None:
        return result
    stack = [root]
    while stack:
        node = stack.pop()
        node_type = node.node_type()
        if is_scan_node(node_type):
            rel = node.relation_name()
            if rel:
                existing = result.get(rel)
                if existing is None or scan_rank(node_type) > scan_rank(existing):
                    result[rel] = node_type
        stack.extend(reversed(node.children()))
    return result