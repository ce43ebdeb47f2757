"""Tests for structural query fingerprints."""

import json

from profile_analyzer.analytics.fingerprint import MAX_DEPTH, fingerprint


def test_literal_values_are_erased():
    assert fingerprint({"status": "active"}) == fingerprint({"status": "archived"})
    assert fingerprint({"status": "A"}) == '{"status":"?"}'


def test_same_operator_set_matches():
    assert fingerprint({"age": {"$gt": 5}}) == fingerprint({"age": {"$gt": 99}})


def test_operator_set_discriminates():
    assert fingerprint({"age": {"$gt": 5}}) != fingerprint({"age": {"$in": [1, 2]}})


def test_operator_names_sorted_and_deduplicated():
    assert fingerprint({"age": {"$lte": 9, "$gte": 1}}) == '{"age":"{$gte,$lte}"}'


def test_key_order_is_significant():
    assert fingerprint({"a": 1, "b": 2}) != fingerprint({"b": 2, "a": 1})


def test_field_names_discriminate():
    assert fingerprint({"status": "A"}) != fingerprint({"state": "A"})


def test_combinators_recurse():
    a = fingerprint({"$or": [{"status": "A"}, {"qty": {"$lt": 30}}]})
    b = fingerprint({"$or": [{"status": "B"}, {"qty": {"$lt": 1}}]})
    assert a == b
    assert json.loads(a)["$or"] == '[{"status":"?"},{"qty":"{$lt}"}]'


def test_nested_documents_recurse():
    assert fingerprint({"address": {"city": "Oslo"}}) == fingerprint({"address": {"city": "Bergen"}})
    assert fingerprint({"address": {"city": "Oslo"}}) != fingerprint({"address": {"zip": "0150"}})


def test_dot_path_scalar_and_operator_body():
    assert json.loads(fingerprint({"address.city": "Oslo"})) == {"address.city": "?"}
    body = json.loads(fingerprint({"address.zip": {"$in": ["1"]}}))
    assert body["address.zip"] == '{"$in":"[1]"}'


def test_string_arrays_render_names():
    assert fingerprint({"pipelineStructure": ["$lookup", "$unwind"]}) == '{"pipelineStructure":"[$lookup,$unwind]"}'
    assert fingerprint(["$match", "$group"]) == "[$match,$group]"


def test_scalar_input():
    assert fingerprint(42) == "?"
    assert fingerprint(None) == "?"


def test_deep_input_degrades_instead_of_failing():
    doc = {"leaf": 1}
    for _ in range(MAX_DEPTH + 5):
        doc = {"nested": doc}
    result = fingerprint(doc)
    assert "..." in result
    assert result == fingerprint(json.loads(json.dumps(doc)))


def test_deterministic():
    doc = {"a": {"$in": [1, 2]}, "$and": [{"b": 1}, {"c": {"d": 2}}]}
    assert fingerprint(doc) == fingerprint(doc)
