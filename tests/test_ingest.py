"""Tests for parsing, validating and loading profile exports."""

import gzip
import io
import json
import zipfile

import pytest
from werkzeug.datastructures import FileStorage

from profile_analyzer.errors import ProfileParseError, ProfileShapeError, ProfileValidationError
from profile_analyzer.ingest import (
    load_profile_bytes,
    load_profile_file,
    load_profile_upload,
    parse_profile_text,
    truncate_large_arrays,
    validate_profile_entries,
)


class TestParseProfileText:
    def test_json_array(self):
        assert parse_profile_text('[{"op": "query"}]') == [{"op": "query"}]

    def test_json_lines(self):
        text = '{"op": "query", "millis": 1}\n\n{"op": "insert", "millis": 2}\n'
        assert parse_profile_text(text) == [{"op": "query", "millis": 1}, {"op": "insert", "millis": 2}]

    def test_single_object_returned_as_is(self):
        assert parse_profile_text('{"op": "query"}') == {"op": "query"}

    @pytest.mark.parametrize("text", ["", "not json", '[{"op": ', '{"a": 1}\n{broken'])
    def test_garbage_raises(self, text):
        with pytest.raises(ProfileParseError):
            parse_profile_text(text)


class TestValidate:
    def test_non_list(self):
        with pytest.raises(ProfileShapeError):
            validate_profile_entries({"op": "query"})

    def test_empty_list(self):
        with pytest.raises(ProfileValidationError):
            validate_profile_entries([])

    def test_no_profiler_fields(self):
        with pytest.raises(ProfileValidationError, match="millis"):
            validate_profile_entries([{"name": "x"}, 3])

    def test_one_recognizable_entry_is_enough(self):
        validate_profile_entries([{"name": "x"}, {"ns": "db.c"}])


class TestTruncateLargeArrays:
    def test_caps_operator_arrays_in_every_location(self):
        big = list(range(25))
        entries = [
            {"query": {"a": {"$in": big}, "$or": [{"b": {"$nin": big}}]}},
            {"command": {"filter": {"c": {"$all": big}}}},
            {"command": {"aggregate": "x", "pipeline": [{"$match": {"d": {"sub": {"$in": big}}}}]}},
        ]
        capped, longest = truncate_large_arrays(entries, max_length=10)
        assert longest == 25
        assert capped[0]["query"]["a"]["$in"] == list(range(10))
        assert capped[0]["query"]["$or"][0]["b"]["$nin"] == list(range(10))
        assert capped[1]["command"]["filter"]["c"]["$all"] == list(range(10))
        assert capped[2]["command"]["pipeline"][0]["$match"]["d"]["sub"]["$in"] == list(range(10))

    def test_input_not_mutated(self):
        entries = [{"query": {"a": {"$in": list(range(30))}}}]
        truncate_large_arrays(entries, max_length=5)
        assert len(entries[0]["query"]["a"]["$in"]) == 30

    def test_short_arrays_and_other_fields_untouched(self):
        entries = [{"query": {"a": {"$in": [1, 2]}}, "tags": list(range(50))}, "noise"]
        capped, longest = truncate_large_arrays(entries, max_length=10)
        assert capped == entries
        assert longest == 2

    def test_non_list_rejected(self):
        with pytest.raises(ProfileShapeError):
            truncate_large_arrays({"query": {}})


PROFILE = [{"op": "query", "ns": "db.c", "millis": 120, "query": {"a": {"$in": list(range(20))}}}]


class TestLoaders:
    def test_plain_bytes_are_truncated(self):
        entries = load_profile_bytes(json.dumps(PROFILE).encode(), name="profile.json")
        assert len(entries[0]["query"]["a"]["$in"]) == 10

    def test_gzip(self):
        raw = gzip.compress(json.dumps(PROFILE).encode())
        assert load_profile_bytes(raw, name="profile.json.gz")[0]["ns"] == "db.c"

    def test_broken_gzip(self):
        with pytest.raises(ProfileParseError):
            load_profile_bytes(b"not gzip", name="profile.json.gz")

    def test_zip_uses_first_profile_member(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("README.md", "ignore me")
            archive.writestr("export/profile.json", json.dumps(PROFILE))
        assert load_profile_bytes(buffer.getvalue(), name="export.zip")[0]["millis"] == 120

    def test_zip_without_profile(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("README.md", "ignore me")
        with pytest.raises(ProfileParseError):
            load_profile_bytes(buffer.getvalue(), name="export.zip")

    def test_utf8_bom_accepted(self):
        raw = b"\xef\xbb\xbf" + json.dumps(PROFILE).encode()
        assert load_profile_bytes(raw)[0]["op"] == "query"

    def test_not_utf8(self):
        with pytest.raises(ProfileParseError):
            load_profile_bytes(b"\xff\xfe\x00")

    def test_upload(self):
        storage = FileStorage(stream=io.BytesIO(json.dumps(PROFILE).encode()), filename="../../profile.json")
        assert load_profile_upload(storage)[0]["ns"] == "db.c"

    def test_file(self, tmp_path):
        path = tmp_path / "profile.jsonl"
        path.write_text("\n".join(json.dumps(entry) for entry in PROFILE * 2), encoding="utf-8")
        assert len(load_profile_file(path)) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_profile_file(tmp_path / "absent.json")
