"""Structure-only signatures for grouping same-shaped queries.

Literal values are replaced by ``"?"`` and operator expressions collapse to
their sorted operator names, so ``{status: "A"}`` and ``{status: "B"}``
share a fingerprint while ``{age: {$gt: 5}}`` and ``{age: {$in: [1]}}`` do
not.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from .filters import Combinator, OperatorExpr, Scalar, SubDocument, iter_clauses

MAX_DEPTH = 10
VALUE_MARKER = "?"
TRUNCATED_MARKER = "..."


def _serialize(canonical: Dict[str, str]) -> str:
    # Same compact layout as JSON.stringify so keys keep their encounter order.
    return json.dumps(canonical, separators=(",", ":"), ensure_ascii=False)


def _canonicalize_list(items: list, depth: int) -> str:
    if all(isinstance(item, str) for item in items):
        return "[" + ",".join(items) + "]"
    return "[" + ",".join(_canonicalize(item, depth + 1) for item in items) + "]"


def _canonicalize(value: Any, depth: int) -> str:
    if depth > MAX_DEPTH:
        return TRUNCATED_MARKER
    if isinstance(value, list):
        return _canonicalize_list(value, depth)
    if not isinstance(value, Mapping):
        return VALUE_MARKER

    canonical: Dict[str, str] = {}
    for clause in iter_clauses(value):
        if isinstance(clause, Combinator):
            canonical[clause.key] = _canonicalize(clause.value, depth + 1)
        elif "." in clause.key:
            # dot paths keep their nested structure even for operator bodies
            nested = clause.value if isinstance(clause, Scalar) else clause.body
            if isinstance(nested, (Mapping, list)):
                canonical[clause.key] = _canonicalize(nested, depth + 1)
            else:
                canonical[clause.key] = VALUE_MARKER
        elif isinstance(clause, OperatorExpr):
            canonical[clause.key] = "{" + ",".join(clause.operators) + "}"
        elif isinstance(clause, SubDocument):
            canonical[clause.key] = _canonicalize(clause.body, depth + 1)
        elif isinstance(clause.value, list):
            canonical[clause.key] = _canonicalize(clause.value, depth + 1)
        else:
            canonical[clause.key] = VALUE_MARKER
    return _serialize(canonical)


def fingerprint(filter_or_stages: Any) -> str:
    """Return the structural signature of a filter or pipeline stage list."""

    return _canonicalize(filter_or_stages, 0)


__all__ = ["MAX_DEPTH", "fingerprint"]
