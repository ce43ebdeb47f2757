"""Tests for query-shape clustering."""

from profile_analyzer.analytics.patterns import cluster_patterns, is_clusterable, pattern_source


def _query(ns, millis, query, **extra):
    entry = {"op": "query", "ns": ns, "millis": millis, "query": query}
    entry.update(extra)
    return entry


def test_groups_by_shape_not_value():
    groups = cluster_patterns([_query("db.orders", 10, {"status": "A"}), _query("db.orders", 20, {"status": "B"})])
    assert len(groups) == 1
    group = groups[0]
    assert group.occurrence_count == 2
    assert group.total_duration_ms == 30
    assert group.avg_duration_ms == 15
    assert group.max_duration_ms == 20
    assert group.top_namespaces == [{"namespace": "db.orders", "count": 2, "percentage": 100}]
    assert [op.duration_ms for op in group.example_operations] == [20, 10]
    assert group.query_types == {"find": 2}


def test_groups_ranked_by_total_time_and_truncated():
    entries = [_query("db.c", 1, {f"field{i}": 1}) for i in range(25)]
    entries.append(_query("db.c", 500, {"slow": 1}))
    groups = cluster_patterns(entries)
    assert len(groups) == 20
    assert groups[0].pattern_key == '{"slow":"?"}'
    assert len(cluster_patterns(entries, limit=5)) == 5


def test_examples_limited_and_ties_keep_order():
    entries = [
        _query("db.a", 5, {"k": 1}, tag="first"),
        _query("db.a", 9, {"k": 2}),
        _query("db.a", 5, {"k": 3}, tag="second"),
        _query("db.a", 1, {"k": 4}),
    ]
    [group] = cluster_patterns(entries)
    examples = group.example_operations
    assert len(examples) == 3
    assert [op.duration_ms for op in examples] == [9, 5, 5]
    assert examples[1].filter == {"k": 1}
    assert examples[2].filter == {"k": 3}


def test_top_namespaces_with_percentages():
    entries = [_query("db.a", 1, {"x": 1})] * 2 + [_query("db.b", 1, {"x": 1})] + [
        _query(f"db.n{i}", 1, {"x": 1}) for i in range(3)
    ]
    [group] = cluster_patterns(entries)
    assert group.top_namespaces[0] == {"namespace": "db.a", "count": 2, "percentage": 33}
    assert group.top_namespaces[1] == {"namespace": "db.b", "count": 1, "percentage": 17}
    assert len(group.top_namespaces) == 3


def test_collection_scan_flag():
    [group] = cluster_patterns(
        [_query("db.a", 1, {"x": 1}, planSummary="IXSCAN"), _query("db.a", 1, {"x": 2}, planSummary="COLLSCAN")]
    )
    assert group.uses_collection_scan


def test_aggregate_without_match_uses_stage_structure():
    entry = {
        "op": "command",
        "ns": "db.a",
        "millis": 4,
        "command": {"aggregate": "a", "pipeline": [{"$group": {"_id": "$x"}}, {"$sort": {"_id": 1}}]},
    }
    source, query_type = pattern_source(entry)
    assert source == {"pipelineStructure": ["$group", "$sort"]}
    assert query_type == "aggregate"
    [group] = cluster_patterns([entry])
    assert group.pattern_key == '{"pipelineStructure":"[$group,$sort]"}'


def test_eligibility():
    assert is_clusterable(_query("db.a", 1, {}))
    assert is_clusterable({"op": "find", "command": {"find": "a", "filter": {"x": 1}}})
    assert not is_clusterable({"op": "query"})
    assert not is_clusterable({"op": "insert", "query": {"x": 1}})
    assert not is_clusterable({"op": "command", "command": {"count": "a"}})
    assert not is_clusterable("x")


def test_bookstore_aggregations_cluster_separately(bookstore_entries):
    groups = cluster_patterns(bookstore_entries)
    assert len(groups) == 3
    assert [g.total_duration_ms for g in groups] == [1200, 850, 300]
    assert all(g.query_types == {"aggregate": 1} for g in groups)
    assert [g.uses_collection_scan for g in groups] == [True, True, False]


def test_empty_input():
    assert cluster_patterns([]) == []
