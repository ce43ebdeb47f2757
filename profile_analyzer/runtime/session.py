"""Process-local store for the dashboard's current working set.

Holds the most recently loaded raw profile, its analysis, the selected
operation and the state of the last commentary request. Analytics never
read this store; the web layer hands data to them explicitly.
"""

from __future__ import annotations

import copy
from threading import Lock
from typing import Any, Dict, List, Optional

from ..ai.state import CommentaryRequest
from ..utils.timing import now_iso


class SessionStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._state: Dict[str, Any] = {}
        self.commentary = CommentaryRequest()
        self.clear()

    def clear(self) -> None:
        """Drop everything; the next upload starts from scratch."""

        with self._lock:
            self._state = {
                "entries": None,
                "source": None,
                "analysis": None,
                "selected_index": None,
                "loaded_at": None,
            }
        self.commentary.reset()

    def store_profile(self, entries: List[Any], analysis: Dict[str, Any], *, source: str) -> None:
        with self._lock:
            self._state.update(
                {
                    "entries": copy.deepcopy(entries),
                    "source": source,
                    "analysis": copy.deepcopy(analysis),
                    "selected_index": None,
                    "loaded_at": now_iso(),
                }
            )
        self.commentary.reset()

    def entries(self) -> Optional[List[Any]]:
        with self._lock:
            return copy.deepcopy(self._state["entries"])

    def analysis(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._state["analysis"])

    def select(self, index: int) -> Any:
        """Mark entry *index* as selected and return a copy of it."""

        with self._lock:
            entries = self._state["entries"] or []
            if not 0 <= index < len(entries):
                raise IndexError(f"No operation at index {index}")
            self._state["selected_index"] = index
            return copy.deepcopy(entries[index])

    def selected(self) -> Optional[Any]:
        with self._lock:
            index = self._state["selected_index"]
            if index is None:
                return None
            return copy.deepcopy(self._state["entries"][index])

    def status(self) -> Dict[str, Any]:
        with self._lock:
            entries = self._state["entries"]
            summary = {
                "loaded": entries is not None,
                "source": self._state["source"],
                "operations": len(entries) if entries is not None else 0,
                "selected_index": self._state["selected_index"],
                "loaded_at": self._state["loaded_at"],
            }
        summary["commentary"] = self.commentary.snapshot()
        return summary


__all__ = ["SessionStore"]
