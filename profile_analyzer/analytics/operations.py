"""Normalized, read-only view of one profiler entry."""

from __future__ import annotations

import copy
import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .filters import is_aggregate_command, normalize_filter

FIND_KINDS = frozenset({"query", "find"})
COMMAND_VERBS = ("find", "aggregate", "insert", "update", "delete")


def coerce_number(value: Any) -> float:
    """Return *value* as a non-negative finite float, ``0.0`` otherwise."""

    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, Mapping) and len(value) == 1:
        # Extended JSON numbers: {"$numberLong": "12"}, {"$numberDouble": "1.5"}
        inner = next(iter(value.values()))
        try:
            number = float(inner)
        except (TypeError, ValueError):
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def _clean(number: float) -> float | int:
    return int(number) if number.is_integer() else number


def duration_of(entry: Mapping[str, Any]) -> float | int:
    return _clean(coerce_number(entry.get("millis")))


def counter_of(entry: Mapping[str, Any], key: str) -> float | int:
    return _clean(coerce_number(entry.get(key)))


def plan_summary_of(entry: Mapping[str, Any]) -> str:
    plan = entry.get("planSummary")
    return plan if isinstance(plan, str) else ""


def uses_collection_scan(entry: Mapping[str, Any]) -> bool:
    return "COLLSCAN" in plan_summary_of(entry)


def op_of(entry: Mapping[str, Any]) -> str:
    """The raw ``op`` field, ``"unknown"`` when absent or empty."""

    op = entry.get("op")
    if isinstance(op, str) and op:
        return op
    return "unknown"


def is_find_operation(entry: Mapping[str, Any]) -> bool:
    return entry.get("op") in FIND_KINDS


def is_aggregate_operation(entry: Mapping[str, Any]) -> bool:
    return entry.get("op") == "command" and is_aggregate_command(entry)


def query_type_of(entry: Mapping[str, Any]) -> str:
    """``op`` when present, else the command verb, else ``"unknown"``."""

    op = entry.get("op")
    if isinstance(op, str) and op:
        return op
    command = entry.get("command")
    if isinstance(command, Mapping):
        for verb in COMMAND_VERBS:
            if command.get(verb):
                return verb
    return "unknown"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ``ts`` given as ISO text or ``{"$date": text | epoch-millis}``."""

    if isinstance(value, Mapping):
        value = value.get("$date")
        if isinstance(value, Mapping):
            value = value.get("$numberLong")
            try:
                value = int(value)
            except (TypeError, ValueError):
                return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def namespace_of(entry: Mapping[str, Any]) -> str:
    ns = entry.get("ns")
    return ns if isinstance(ns, str) and ns else "unknown"


def split_namespace(namespace: str) -> tuple[str, str]:
    database, _, collection = namespace.partition(".")
    return database, collection


def display_text_of(entry: Mapping[str, Any]) -> str:
    source: Any = entry
    if entry.get("query") is not None:
        source = entry["query"]
    elif entry.get("command") is not None:
        source = entry["command"]
    return json.dumps(source, indent=2, default=str)


@dataclass
class NormalizedOperation:
    """Value-derived view of a profiler entry; the raw entry is never touched."""

    namespace: str
    database: str
    collection: str
    operation_kind: str
    query_type: str
    duration_ms: float | int
    filter: Dict[str, Any]
    display_text: str
    docs_examined: float | int = 0
    nreturned: float | int = 0
    keys_examined: float | int = 0
    plan_summary: str = ""
    timestamp: Optional[datetime] = None
    command: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any]) -> "NormalizedOperation":
        namespace = namespace_of(entry)
        database, collection = split_namespace(namespace)
        command = entry.get("command")
        return cls(
            namespace=namespace,
            database=database,
            collection=collection,
            operation_kind=op_of(entry),
            query_type=query_type_of(entry),
            duration_ms=duration_of(entry),
            filter=normalize_filter(entry),
            display_text=display_text_of(entry),
            docs_examined=counter_of(entry, "docsExamined"),
            nreturned=counter_of(entry, "nreturned"),
            keys_examined=counter_of(entry, "keysExamined"),
            plan_summary=plan_summary_of(entry),
            timestamp=parse_timestamp(entry.get("ts")),
            command=copy.deepcopy(dict(command)) if isinstance(command, Mapping) else None,
        )

    @property
    def scan_ratio(self) -> Optional[float]:
        if not self.nreturned:
            return None
        return self.docs_examined / self.nreturned

    @property
    def uses_collection_scan(self) -> bool:
        return "COLLSCAN" in self.plan_summary

    def as_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "database": self.database,
            "collection": self.collection,
            "operation_kind": self.operation_kind,
            "query_type": self.query_type,
            "duration_ms": self.duration_ms,
            "filter": self.filter,
            "display_text": self.display_text,
            "docs_examined": self.docs_examined,
            "nreturned": self.nreturned,
            "keys_examined": self.keys_examined,
            "scan_ratio": self.scan_ratio,
            "plan_summary": self.plan_summary,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "command": self.command,
        }


__all__ = [
    "NormalizedOperation",
    "coerce_number",
    "counter_of",
    "duration_of",
    "is_aggregate_operation",
    "is_find_operation",
    "namespace_of",
    "op_of",
    "parse_timestamp",
    "plan_summary_of",
    "query_type_of",
    "split_namespace",
    "uses_collection_scan",
]
