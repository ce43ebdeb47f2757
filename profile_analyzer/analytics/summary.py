"""Overall, per-collection and per-operation-kind statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .operations import NormalizedOperation, duration_of, namespace_of, op_of


def average(total: float, count: int) -> float:
    """``total / count`` rounded to two decimals; ``0`` for an empty group.

    Every average in an analysis result goes through here.
    """

    if not count:
        return 0
    return round(total / count, 2)


@dataclass
class GroupStats:
    name: str
    count: int = 0
    total_duration_ms: float = 0

    @property
    def avg_duration_ms(self) -> float:
        return average(self.total_duration_ms, self.count)

    def add(self, duration: float) -> None:
        self.count += 1
        self.total_duration_ms += duration

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "count": self.count,
            "total_duration_ms": self.total_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
        }


@dataclass
class Summary:
    total_operations: int = 0
    total_duration_ms: float = 0
    avg_duration_ms: float = 0
    max_duration_ms: float = 0
    by_collection: List[GroupStats] = field(default_factory=list)
    by_operation_kind: List[GroupStats] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_operations": self.total_operations,
            "total_duration_ms": self.total_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "by_collection": [group.as_dict() for group in self.by_collection],
            "by_operation_kind": [group.as_dict() for group in self.by_operation_kind],
        }


def _group(entries: Sequence[Mapping[str, Any]], key_fn) -> List[GroupStats]:
    groups: Dict[str, GroupStats] = {}
    for entry in entries:
        name = key_fn(entry)
        group = groups.get(name)
        if group is None:
            group = groups[name] = GroupStats(name=name)
        group.add(duration_of(entry))
    return list(groups.values())


def summarize(entries: Sequence[Mapping[str, Any]]) -> Summary:
    """Compute the baseline statistics for a profile.

    Collections are ranked by total time, operation kinds by count. Entries
    that are not mappings count as zero-duration ``unknown`` operations.
    """

    rows = [entry if isinstance(entry, Mapping) else {} for entry in entries]
    if not rows:
        return Summary()

    durations = [duration_of(entry) for entry in rows]
    total = sum(durations)

    by_collection = sorted(_group(rows, namespace_of), key=lambda g: g.total_duration_ms, reverse=True)
    by_kind = sorted(_group(rows, op_of), key=lambda g: g.count, reverse=True)

    return Summary(
        total_operations=len(rows),
        total_duration_ms=total,
        avg_duration_ms=average(total, len(rows)),
        max_duration_ms=max(durations),
        by_collection=by_collection,
        by_operation_kind=by_kind,
    )


@dataclass
class DatasetOverview:
    total_operations: int
    avg_duration_ms: float
    max_duration_ms: float
    slowest_operation: Optional[NormalizedOperation]
    total_collections: int
    total_databases: int
    time_range_start: Optional[datetime]
    time_range_end: Optional[datetime]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_operations": self.total_operations,
            "avg_duration_ms": self.avg_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "slowest_operation": self.slowest_operation.as_dict() if self.slowest_operation else None,
            "total_collections": self.total_collections,
            "total_databases": self.total_databases,
            "time_range": {
                "start": self.time_range_start.isoformat() if self.time_range_start else None,
                "end": self.time_range_end.isoformat() if self.time_range_end else None,
            },
        }


def dataset_overview(operations: Iterable[NormalizedOperation]) -> DatasetOverview:
    ops = list(operations)
    total = sum(op.duration_ms for op in ops)

    slowest: Optional[NormalizedOperation] = None
    for op in ops:
        if op.duration_ms > 0 and (slowest is None or op.duration_ms > slowest.duration_ms):
            slowest = op

    collections = {op.collection for op in ops if op.collection}
    databases = {op.database for op in ops if op.database and op.namespace != "unknown"}
    stamps = [op.timestamp for op in ops if op.timestamp is not None]

    return DatasetOverview(
        total_operations=len(ops),
        avg_duration_ms=average(total, len(ops)),
        max_duration_ms=slowest.duration_ms if slowest else 0,
        slowest_operation=slowest,
        total_collections=len(collections),
        total_databases=len(databases),
        time_range_start=min(stamps) if stamps else None,
        time_range_end=max(stamps) if stamps else None,
    )


__all__ = ["DatasetOverview", "GroupStats", "Summary", "average", "dataset_overview", "summarize"]
