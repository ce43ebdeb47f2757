"""Cluster query-shaped operations by structural fingerprint."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .filters import has_match_stage, normalize_filter, pipeline_stage_names
from .fingerprint import fingerprint
from .operations import (
    NormalizedOperation,
    is_aggregate_operation,
    is_find_operation,
    uses_collection_scan,
)
from .summary import average

DEFAULT_PATTERN_LIMIT = 20
DEFAULT_EXAMPLE_LIMIT = 3
TOP_NAMESPACES = 3

# (raw entry, normalized view, query type)
Member = Tuple[Mapping[str, Any], NormalizedOperation, str]


def _has_find_filter(entry: Mapping[str, Any]) -> bool:
    if isinstance(entry.get("query"), Mapping):
        return True
    command = entry.get("command")
    return isinstance(command, Mapping) and isinstance(command.get("filter"), Mapping)


def is_clusterable(entry: Any) -> bool:
    if not isinstance(entry, Mapping):
        return False
    if is_find_operation(entry) and _has_find_filter(entry):
        return True
    return is_aggregate_operation(entry)


def pattern_source(entry: Mapping[str, Any]) -> Tuple[Dict[str, Any], str]:
    """The document to fingerprint and the query type (``find``/``aggregate``).

    Aggregations without any ``$match`` stage are represented by their stage
    names so they still cluster by pipeline shape.
    """

    if is_find_operation(entry):
        return normalize_filter(entry), "find"
    if has_match_stage(entry):
        return normalize_filter(entry), "aggregate"
    return {"pipelineStructure": pipeline_stage_names(entry)}, "aggregate"


def _percentage(count: int, total: int) -> int:
    return int(count * 100 / total + 0.5) if total else 0


@dataclass
class QueryPatternGroup:
    pattern_key: str
    occurrence_count: int = 0
    total_duration_ms: float = 0
    max_duration_ms: float = 0
    top_namespaces: List[Dict[str, Any]] = field(default_factory=list)
    example_operations: List[NormalizedOperation] = field(default_factory=list)
    uses_collection_scan: bool = False
    query_types: Dict[str, int] = field(default_factory=dict)

    @property
    def avg_duration_ms(self) -> float:
        return average(self.total_duration_ms, self.occurrence_count)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "pattern_key": self.pattern_key,
            "occurrence_count": self.occurrence_count,
            "total_duration_ms": self.total_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "top_namespaces": [dict(item) for item in self.top_namespaces],
            "example_operations": [op.as_dict() for op in self.example_operations],
            "uses_collection_scan": self.uses_collection_scan,
            "query_types": dict(self.query_types),
        }


def _build_group(key: str, members: List[Member], example_limit: int) -> QueryPatternGroup:
    operations = [op for _, op, _ in members]
    count = len(operations)

    namespaces = Counter(op.namespace for op in operations)
    # most_common keeps first-seen order among equal counts
    top_namespaces = [
        {"namespace": ns, "count": hits, "percentage": _percentage(hits, count)}
        for ns, hits in namespaces.most_common(TOP_NAMESPACES)
    ]

    slowest_first = sorted(operations, key=lambda op: op.duration_ms, reverse=True)

    return QueryPatternGroup(
        pattern_key=key,
        occurrence_count=count,
        total_duration_ms=sum(op.duration_ms for op in operations),
        max_duration_ms=max(op.duration_ms for op in operations),
        top_namespaces=top_namespaces,
        example_operations=slowest_first[:example_limit],
        uses_collection_scan=any(uses_collection_scan(entry) for entry, _, _ in members),
        query_types=dict(Counter(query_type for _, _, query_type in members)),
    )


def cluster_patterns(
    entries: Iterable[Any],
    *,
    limit: int = DEFAULT_PATTERN_LIMIT,
    example_limit: int = DEFAULT_EXAMPLE_LIMIT,
) -> List[QueryPatternGroup]:
    """Group operations by fingerprint and rank groups by total time."""

    groups: Dict[str, List[Member]] = {}
    for entry in entries:
        if not is_clusterable(entry):
            continue
        source, query_type = pattern_source(entry)
        key = fingerprint(source)
        operation = NormalizedOperation.from_entry(entry)
        groups.setdefault(key, []).append((entry, operation, query_type))

    ranked = [_build_group(key, members, example_limit) for key, members in groups.items()]
    ranked.sort(key=lambda group: group.total_duration_ms, reverse=True)
    return ranked[:limit]


__all__ = ["QueryPatternGroup", "cluster_patterns", "is_clusterable", "pattern_source"]
