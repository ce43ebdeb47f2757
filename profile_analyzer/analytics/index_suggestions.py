"""Utilities for deriving index suggestions from profiler output."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .filters import extract_fields, has_match_stage, normalize_filter
from .operations import (
    counter_of,
    duration_of,
    is_aggregate_operation,
    is_find_operation,
    namespace_of,
    plan_summary_of,
    split_namespace,
)

SLOW_QUERY_THRESHOLD_MS = 100
HIGH_SCAN_RATIO = 10
LARGE_SCAN_DOCS = 10_000
MAX_INDEX_FIELDS = 3

# (threshold, points), checked in order; only the first hit scores
DURATION_POINTS: Tuple[Tuple[float, int], ...] = ((1000, 100), (500, 50), (100, 20))
SCAN_RATIO_POINTS: Tuple[Tuple[float, int], ...] = ((1000, 50), (100, 30), (10, 10))
COLLSCAN_POINTS = 40
LARGE_COLLSCAN_POINTS = 30


@dataclass
class SuggestedIndex:
    collection: str
    fields: List[str]

    @property
    def definition(self) -> Dict[str, int]:
        return {name: 1 for name in self.fields}

    @property
    def definition_text(self) -> str:
        return "{ " + ", ".join(f'"{name}": 1' for name in self.fields) + " }"

    @property
    def command(self) -> str:
        return f"db.{self.collection}.createIndex({json.dumps(self.definition)})"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "fields": list(self.fields),
            "definition": self.definition,
            "definition_text": self.definition_text,
            "command": self.command,
        }


@dataclass
class IndexSuggestion:
    namespace: str
    filter_fields: List[str]
    filter: Dict[str, Any]
    duration_ms: float
    docs_examined: float
    nreturned: float
    scan_ratio: Optional[float]
    plan_summary: str
    recommendation_score: int
    suggested_index: Optional[SuggestedIndex]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "filter_fields": list(self.filter_fields),
            "filter": self.filter,
            "duration_ms": self.duration_ms,
            "docs_examined": self.docs_examined,
            "nreturned": self.nreturned,
            "scan_ratio": self.scan_ratio,
            "plan_summary": self.plan_summary,
            "recommendation_score": self.recommendation_score,
            "suggested_index": self.suggested_index.as_dict() if self.suggested_index else None,
        }


def _is_candidate(entry: Mapping[str, Any]) -> bool:
    return is_find_operation(entry) or (is_aggregate_operation(entry) and has_match_stage(entry))


def _is_symptomatic(entry: Mapping[str, Any]) -> bool:
    duration = duration_of(entry)
    docs = counter_of(entry, "docsExamined")
    returned = counter_of(entry, "nreturned")

    is_slow = duration > SLOW_QUERY_THRESHOLD_MS
    high_scan_ratio = returned > 0 and docs > 0 and docs / returned > HIGH_SCAN_RATIO
    return is_slow or high_scan_ratio or "COLLSCAN" in plan_summary_of(entry)


def qualifies(entry: Any) -> bool:
    """Whether *entry* is a query-shaped operation showing slowness symptoms."""

    return isinstance(entry, Mapping) and _is_candidate(entry) and _is_symptomatic(entry)


def _points(value: Optional[float], table: Sequence[Tuple[float, int]]) -> int:
    if value is None:
        return 0
    for threshold, points in table:
        if value > threshold:
            return points
    return 0


def recommendation_score(
    duration_ms: float,
    scan_ratio: Optional[float],
    plan_summary: str = "",
    docs_examined: float = 0,
) -> int:
    """Additive priority score; every threshold is an exclusive cut point."""

    score = _points(duration_ms, DURATION_POINTS)
    score += _points(scan_ratio, SCAN_RATIO_POINTS)
    if "COLLSCAN" in (plan_summary or ""):
        score += COLLSCAN_POINTS
        if docs_examined > LARGE_SCAN_DOCS:
            score += LARGE_COLLSCAN_POINTS
    return score


def suggest_index(namespace: str, fields: Sequence[str]) -> Optional[SuggestedIndex]:
    """Ascending index on the first three filter fields, ``None`` without fields."""

    if not fields:
        return None
    _, collection = split_namespace(namespace)
    return SuggestedIndex(collection=collection or namespace, fields=list(fields[:MAX_INDEX_FIELDS]))


def _build_suggestion(entry: Mapping[str, Any]) -> IndexSuggestion:
    namespace = namespace_of(entry)
    filter_doc = normalize_filter(entry)
    fields = extract_fields(filter_doc)
    duration = duration_of(entry)
    docs = counter_of(entry, "docsExamined")
    returned = counter_of(entry, "nreturned")
    plan_summary = plan_summary_of(entry)
    scan_ratio = docs / returned if returned else None

    return IndexSuggestion(
        namespace=namespace,
        filter_fields=fields,
        filter=filter_doc,
        duration_ms=duration,
        docs_examined=docs,
        nreturned=returned,
        scan_ratio=scan_ratio,
        plan_summary=plan_summary,
        recommendation_score=recommendation_score(duration, scan_ratio, plan_summary, docs),
        suggested_index=suggest_index(namespace, fields),
    )


def recommend_indexes(entries: Iterable[Any]) -> List[IndexSuggestion]:
    """Rank qualifying operations by recommendation score (stable on ties)."""

    suggestions = [_build_suggestion(entry) for entry in entries if qualifies(entry)]
    suggestions.sort(key=lambda s: s.recommendation_score, reverse=True)
    return suggestions


# ---------------------------------------------------------------------------
# Consolidation across operations


@dataclass
class ConsolidatedIndex:
    namespace: str
    index: SuggestedIndex
    occurrences: int = 0
    total_duration_ms: float = 0
    best_score: int = 0
    uses_collection_scan: bool = False
    sample_filters: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def spec(self) -> Tuple[str, ...]:
        return tuple(self.index.fields)

    def absorb(self, other: "ConsolidatedIndex") -> None:
        self.occurrences += other.occurrences
        self.total_duration_ms += other.total_duration_ms
        self.best_score = max(self.best_score, other.best_score)
        self.uses_collection_scan = self.uses_collection_scan or other.uses_collection_scan

    def as_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "type": "compound" if len(self.index.fields) > 1 else "single_field",
            "index": self.index.definition_text,
            "command": self.index.command,
            "fields": list(self.index.fields),
            "occurrences": self.occurrences,
            "total_duration_ms": self.total_duration_ms,
            "best_score": self.best_score,
            "uses_collection_scan": self.uses_collection_scan,
            "sample_filters": list(self.sample_filters),
        }


def _is_prefix(candidate: Tuple[str, ...], other: Tuple[str, ...]) -> bool:
    if len(candidate) > len(other):
        return False
    return candidate == other[: len(candidate)]


def consolidate_suggestions(
    suggestions: Iterable[IndexSuggestion],
    *,
    sample_limit: int = 3,
) -> List[ConsolidatedIndex]:
    """Merge per-operation suggestions into one entry per distinct index.

    An index whose field list is a prefix of another kept index on the same
    namespace is dropped; the longer index already serves it.
    """

    merged: Dict[Tuple[str, Tuple[str, ...]], ConsolidatedIndex] = {}
    for suggestion in suggestions:
        index = suggestion.suggested_index
        if index is None:
            continue
        key = (suggestion.namespace, tuple(index.fields))
        entry = merged.get(key)
        if entry is None:
            entry = merged[key] = ConsolidatedIndex(namespace=suggestion.namespace, index=index)
        entry.occurrences += 1
        entry.total_duration_ms += suggestion.duration_ms
        entry.best_score = max(entry.best_score, suggestion.recommendation_score)
        if "COLLSCAN" in suggestion.plan_summary:
            entry.uses_collection_scan = True
        if len(entry.sample_filters) < sample_limit:
            entry.sample_filters.append(suggestion.filter)

    by_namespace: Dict[str, List[ConsolidatedIndex]] = {}
    for entry in merged.values():
        by_namespace.setdefault(entry.namespace, []).append(entry)

    kept: List[ConsolidatedIndex] = []
    for entries in by_namespace.values():
        longest_first = sorted(entries, key=lambda e: -len(e.spec))
        deduped: List[ConsolidatedIndex] = []
        for candidate in longest_first:
            host = next((e for e in deduped if _is_prefix(candidate.spec, e.spec)), None)
            if host is None:
                deduped.append(candidate)
            else:
                host.absorb(candidate)
        kept.extend(deduped)

    kept.sort(key=lambda e: (-e.best_score, -e.occurrences))
    return kept


__all__ = [
    "ConsolidatedIndex",
    "IndexSuggestion",
    "SuggestedIndex",
    "consolidate_suggestions",
    "qualifies",
    "recommend_indexes",
    "recommendation_score",
    "suggest_index",
]
