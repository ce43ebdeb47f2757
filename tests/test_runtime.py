"""Tests for the session store and the shared runtime helpers."""

import pytest

from profile_analyzer.runtime import SessionStore
from profile_analyzer.utils.concurrency import run_isolated
from profile_analyzer.utils.timing import TimingTable, now_iso, timed


class TestSessionStore:
    def test_store_and_copy_semantics(self, bookstore_entries):
        store = SessionStore()
        store.store_profile(bookstore_entries, {"total_operations": 3}, source="sample")
        bookstore_entries[0]["millis"] = 0
        assert store.entries()[0]["millis"] == 850
        store.entries()[0]["millis"] = 1
        assert store.entries()[0]["millis"] == 850
        assert store.analysis() == {"total_operations": 3}

    def test_select_and_status(self, bookstore_entries):
        store = SessionStore()
        store.store_profile(bookstore_entries, {}, source="sample")
        assert store.select(1)["ns"] == "bookstore.orders"
        status = store.status()
        assert status["loaded"] is True
        assert status["operations"] == 3
        assert status["selected_index"] == 1
        assert status["commentary"]["status"] == "idle"
        with pytest.raises(IndexError):
            store.select(3)
        with pytest.raises(IndexError):
            store.select(-1)

    def test_new_profile_clears_selection_and_commentary(self, bookstore_entries):
        store = SessionStore()
        store.store_profile(bookstore_entries, {}, source="a")
        store.select(0)
        store.commentary.start()
        store.store_profile(bookstore_entries[:1], {}, source="b")
        assert store.selected() is None
        assert store.status()["commentary"]["status"] == "idle"

    def test_clear(self, bookstore_entries):
        store = SessionStore()
        store.store_profile(bookstore_entries, {}, source="a")
        store.clear()
        assert store.entries() is None
        assert store.analysis() is None
        assert store.status()["loaded"] is False


class TestRunIsolated:
    @pytest.mark.parametrize("parallel", [False, True])
    def test_failures_do_not_stop_siblings(self, parallel):
        def _fail():
            raise ValueError("nope")

        timings = TimingTable()
        results, failures = run_isolated(
            {"one": lambda: 1, "bad": _fail, "two": lambda: 2}, parallel=parallel, sink=timings
        )
        assert results == {"one": 1, "two": 2}
        assert list(failures) == ["bad"]
        assert isinstance(failures["bad"], ValueError)
        assert set(timings.sections) == {"one", "bad", "two"}


def test_timed_reports_even_on_error():
    timings = TimingTable()
    with pytest.raises(RuntimeError):
        with timed("section", timings):
            raise RuntimeError("boom")
    assert "section" in timings.sections
    assert timings.total() >= 0
    assert set(timings.as_millis()) == {"section"}


def test_now_iso_format():
    stamp = now_iso()
    assert stamp.endswith("Z")
    assert "." not in stamp
