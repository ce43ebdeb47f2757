"""Shared fixtures for the profile analyzer tests."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from profile_analyzer.ai.commentary import TOOL_NAME
from profile_analyzer.config import Settings
from profile_analyzer.sample_data import load_sample_profile


# =============================================================================
# PROFILE FIXTURES
# =============================================================================

@pytest.fixture
def collscan_entry() -> Dict[str, Any]:
    """Slow legacy query doing a full collection scan."""
    return {
        "op": "query",
        "ns": "db.users",
        "millis": 850,
        "docsExamined": 150000,
        "nreturned": 25,
        "planSummary": "COLLSCAN",
        "query": {"status": "A"},
    }


@pytest.fixture
def mixed_entries(collscan_entry) -> List[Dict[str, Any]]:
    return [
        collscan_entry,
        {"op": "query", "ns": "db.orders", "millis": 10, "query": {"status": "A"}, "planSummary": "IXSCAN"},
        {"op": "query", "ns": "db.orders", "millis": 20, "query": {"status": "B"}, "planSummary": "IXSCAN"},
        {
            "op": "command",
            "ns": "db.orders",
            "millis": 1500,
            "docsExamined": 40000,
            "nreturned": 20,
            "planSummary": "COLLSCAN",
            "command": {
                "aggregate": "orders",
                "pipeline": [{"$match": {"customerId": 7, "total": {"$gt": 100}}}, {"$sort": {"total": -1}}],
            },
        },
        {"op": "insert", "ns": "db.orders", "millis": 3},
        {"op": "update", "ns": "db.users", "millis": 7, "command": {"q": {"_id": 1}}},
    ]


@pytest.fixture
def bookstore_entries() -> List[Dict[str, Any]]:
    return load_sample_profile()


# =============================================================================
# SETTINGS
# =============================================================================

@pytest.fixture
def offline_settings() -> Settings:
    """Settings with AI commentary switched off."""
    return Settings(anthropic_api_key=None, ai_enabled=False, parallel_analysis=False)


@pytest.fixture
def ai_settings() -> Settings:
    return Settings(anthropic_api_key="sk-test", ai_enabled=True, ai_model="claude-test")


# =============================================================================
# FAKE ANTHROPIC CLIENT
# =============================================================================

class FakeStream:
    """Mimics the context manager returned by ``client.messages.stream``."""

    def __init__(self, snapshots: List[Any], final_input: Any, error: Optional[Exception] = None) -> None:
        self._snapshots = snapshots
        self._final_input = final_input
        self._error = error

    def __enter__(self) -> "FakeStream":
        return self

    def __exit__(self, *exc_info: Any) -> bool:
        return False

    def __iter__(self):
        yield SimpleNamespace(type="message_start")
        for snapshot in self._snapshots:
            yield SimpleNamespace(type="input_json", partial_json="", snapshot=snapshot)
        if self._error is not None:
            raise self._error

    def get_final_message(self) -> Any:
        content = []
        if self._final_input is not None:
            content.append(SimpleNamespace(type="tool_use", name=TOOL_NAME, input=self._final_input))
        return SimpleNamespace(content=content)


class FakeMessages:
    def __init__(self, snapshots, final_input, error=None, connect_error=None) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._snapshots = snapshots
        self._final_input = final_input
        self._error = error
        self._connect_error = connect_error

    def stream(self, **kwargs: Any) -> FakeStream:
        self.calls.append(kwargs)
        if self._connect_error is not None:
            raise self._connect_error
        return FakeStream(self._snapshots, self._final_input, self._error)


class FakeAnthropic:
    def __init__(self, snapshots=None, final_input=None, error=None, connect_error=None) -> None:
        self.messages = FakeMessages(snapshots or [], final_input, error, connect_error)


COMPLETE_COMMENTARY = {
    "performance_analysis": [
        {"severity": "danger", "message": "Full collection scan over 150,000 documents."},
        {"severity": "info", "message": "Only 25 documents returned."},
    ],
    "suggested_indexes": [
        {
            "index_definition_text": 'db.users.createIndex({"status": 1})',
            "rationale_message": "Serves the equality filter on status.",
        }
    ],
    "suggested_query_text": 'db.users.find({"status": "A"})',
}


@pytest.fixture
def commentary_payload() -> Dict[str, Any]:
    return COMPLETE_COMMENTARY


@pytest.fixture
def fake_anthropic():
    """Factory for fake clients streaming the canned commentary."""

    def _make(**overrides: Any) -> FakeAnthropic:
        options = {
            "snapshots": [
                {"performance_analysis": [{"severity": "danger"}]},
                {"performance_analysis": COMPLETE_COMMENTARY["performance_analysis"][:1]},
                COMPLETE_COMMENTARY,
            ],
            "final_input": COMPLETE_COMMENTARY,
        }
        options.update(overrides)
        return FakeAnthropic(**options)

    return _make


# =============================================================================
# FLASK
# =============================================================================

@pytest.fixture
def flask_app(offline_settings):
    from app import create_app

    return create_app({"TESTING": True, "PROFILE_ANALYZER_SETTINGS": offline_settings})


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()
