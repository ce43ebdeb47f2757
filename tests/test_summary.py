"""Tests for aggregate statistics and the dataset overview."""

from profile_analyzer.analytics.operations import NormalizedOperation
from profile_analyzer.analytics.summary import average, dataset_overview, summarize


def test_empty_input_is_zeroed():
    assert summarize([]).as_dict() == {
        "total_operations": 0,
        "total_duration_ms": 0,
        "avg_duration_ms": 0,
        "max_duration_ms": 0,
        "by_collection": [],
        "by_operation_kind": [],
    }


def test_average_rounds_to_two_decimals():
    assert average(10, 3) == 3.33
    assert average(5, 0) == 0


def test_collections_ranked_by_total_time(mixed_entries):
    summary = summarize(mixed_entries)
    assert summary.total_operations == 6
    assert summary.total_duration_ms == 850 + 10 + 20 + 1500 + 3 + 7
    assert summary.max_duration_ms == 1500
    names = [group.name for group in summary.by_collection]
    assert names == ["db.orders", "db.users"]
    orders = summary.by_collection[0]
    assert orders.count == 4
    assert orders.total_duration_ms == 1533
    assert orders.avg_duration_ms == 383.25


def test_operation_kinds_ranked_by_count(mixed_entries):
    kinds = summarize(mixed_entries).by_operation_kind
    assert kinds[0].name == "query"
    assert kinds[0].count == 3
    assert {group.name for group in kinds} == {"query", "command", "insert", "update"}


def test_missing_fields_fall_back_to_unknown():
    summary = summarize([{}, {"millis": "slow"}, "garbage"])
    assert summary.total_operations == 3
    assert summary.total_duration_ms == 0
    assert [g.name for g in summary.by_collection] == ["unknown"]
    assert [g.name for g in summary.by_operation_kind] == ["unknown"]


def test_dataset_overview(bookstore_entries):
    overview = dataset_overview(NormalizedOperation.from_entry(e) for e in bookstore_entries)
    data = overview.as_dict()
    assert data["total_operations"] == 3
    assert data["max_duration_ms"] == 1200
    assert data["avg_duration_ms"] == 783.33
    assert data["slowest_operation"]["namespace"] == "bookstore.orders"
    assert data["total_collections"] == 3
    assert data["total_databases"] == 1
    assert data["time_range"] == {"start": "2025-03-03T10:00:00+00:00", "end": "2025-03-03T10:10:00+00:00"}


def test_dataset_overview_empty():
    data = dataset_overview([]).as_dict()
    assert data["total_operations"] == 0
    assert data["slowest_operation"] is None
    assert data["time_range"] == {"start": None, "end": None}
