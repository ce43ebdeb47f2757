"""Filter normalization and indexable-field extraction.

Profiler entries carry their predicate in one of three places depending on
the command encoding: the legacy ``query`` document, ``command.filter`` for
``find`` commands, or the ``$match`` stages of an aggregation pipeline.
:func:`normalize_filter` turns all three into one plain filter document and
:func:`extract_fields` walks that document to find the field paths worth
indexing.

Both the extractor and the fingerprinter in :mod:`.fingerprint` look at a
filter one ``key: value`` clause at a time. :func:`classify_clause` is the
single place that decides what such a clause is.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple, Union

COMBINATORS = frozenset({"$and", "$or", "$nor"})


@dataclass(frozen=True)
class Scalar:
    """``{field: literal}`` (lists and ``None`` included)."""

    key: str
    value: Any


@dataclass(frozen=True)
class OperatorExpr:
    """``{field: {$op: ...}}``; only the operator names matter structurally."""

    key: str
    operators: Tuple[str, ...]
    body: Mapping[str, Any]


@dataclass(frozen=True)
class SubDocument:
    """``{field: {nested: ...}}`` without any operator keys."""

    key: str
    body: Mapping[str, Any]


@dataclass(frozen=True)
class Combinator:
    """``{$and|$or|$nor: [...]}``."""

    key: str
    value: Any

    @property
    def clauses(self) -> List[Mapping[str, Any]]:
        if not isinstance(self.value, list):
            return []
        return [item for item in self.value if isinstance(item, Mapping)]


Clause = Union[Scalar, OperatorExpr, SubDocument, Combinator]


def operator_names(value: Mapping[str, Any]) -> Tuple[str, ...]:
    """Sorted, de-duplicated ``$``-prefixed keys of *value*."""

    return tuple(sorted({key for key in value if isinstance(key, str) and key.startswith("$")}))


def classify_clause(key: str, value: Any) -> Clause:
    if key in COMBINATORS:
        return Combinator(key, value)
    if isinstance(value, Mapping):
        operators = operator_names(value)
        if operators:
            return OperatorExpr(key, operators, value)
        return SubDocument(key, value)
    return Scalar(key, value)


def iter_clauses(filter_doc: Mapping[str, Any]) -> Iterator[Clause]:
    for key, value in filter_doc.items():
        yield classify_clause(str(key), value)


def is_operator_key(key: str) -> bool:
    return key.startswith("$")


# ---------------------------------------------------------------------------
# Shape normalization


def _match_stages(pipeline: Sequence[Any]) -> List[Mapping[str, Any]]:
    stages: List[Mapping[str, Any]] = []
    for stage in pipeline:
        if isinstance(stage, Mapping) and "$match" in stage:
            body = stage["$match"]
            if isinstance(body, Mapping):
                stages.append(body)
    return stages


def is_aggregate_command(entry: Mapping[str, Any]) -> bool:
    """True when *entry* carries ``command.aggregate`` with a list pipeline."""

    command = entry.get("command")
    if not isinstance(command, Mapping):
        return False
    return bool(command.get("aggregate")) and isinstance(command.get("pipeline"), list)


def has_match_stage(entry: Mapping[str, Any]) -> bool:
    if not is_aggregate_command(entry):
        return False
    return bool(_match_stages(entry["command"]["pipeline"]))


def pipeline_stage_names(entry: Mapping[str, Any]) -> List[str]:
    """First key of every pipeline stage, ``"unknown"`` for empty stages."""

    if not is_aggregate_command(entry):
        return []
    names: List[str] = []
    for stage in entry["command"]["pipeline"]:
        if isinstance(stage, Mapping) and stage:
            names.append(str(next(iter(stage))))
        else:
            names.append("unknown")
    return names


def normalize_filter(entry: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the effective filter document of a profiler entry.

    Lookup order is ``query``, then ``command.filter``, then the merged
    ``$match`` stages of an aggregation. When several ``$match`` stages set
    the same key the later stage wins. Anything missing or malformed yields
    ``{}``.
    """

    if not isinstance(entry, Mapping):
        return {}

    query = entry.get("query")
    if query is not None:
        return copy.deepcopy(dict(query)) if isinstance(query, Mapping) else {}

    command = entry.get("command")
    if not isinstance(command, Mapping):
        return {}

    command_filter = command.get("filter")
    if command_filter is not None:
        return copy.deepcopy(dict(command_filter)) if isinstance(command_filter, Mapping) else {}

    if is_aggregate_command(entry):
        merged: Dict[str, Any] = {}
        for body in _match_stages(command["pipeline"]):
            merged.update(copy.deepcopy(dict(body)))
        return merged

    return {}


# ---------------------------------------------------------------------------
# Field extraction


def extract_fields(filter_doc: Any) -> List[str]:
    """Return the indexable field paths of *filter_doc* in declaration order.

    >>> extract_fields({"$and": [{"a": 1}, {"b": {"$gt": 2}}]})
    ['a', 'b']
    >>> extract_fields({"address": {"city": "Oslo"}, "age": {"$exists": True}})
    ['address.city', 'age']
    """

    fields: Dict[str, None] = {}

    def _walk(doc: Mapping[str, Any], prefix: str) -> None:
        for clause in iter_clauses(doc):
            if isinstance(clause, Combinator):
                for sub_filter in clause.clauses:
                    _walk(sub_filter, prefix)
                continue
            if is_operator_key(clause.key):
                continue

            path = f"{prefix}.{clause.key}" if prefix else clause.key
            if isinstance(clause, SubDocument):
                _walk(clause.body, path)
            else:
                fields[path] = None

    if isinstance(filter_doc, Mapping):
        _walk(filter_doc, "")
    return list(fields)


__all__ = [
    "COMBINATORS",
    "Clause",
    "Combinator",
    "OperatorExpr",
    "Scalar",
    "SubDocument",
    "classify_clause",
    "extract_fields",
    "has_match_stage",
    "is_aggregate_command",
    "iter_clauses",
    "normalize_filter",
    "operator_names",
    "pipeline_stage_names",
]
