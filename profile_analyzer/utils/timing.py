"""Timing utilities shared by the analysis engines."""

from __future__ import annotations

import contextlib
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator


@contextlib.contextmanager
def timed(section: str, sink: Callable[[str, float], None]) -> Iterator[None]:
    """Measure execution time of a code block and report to *sink*.

    The sink is called even when the block raises, so failed engines still
    show up in the timing table.
    """

    start = time.perf_counter()
    try:
        yield
    finally:
        sink(section, time.perf_counter() - start)


class TimingTable:
    """Collects ``section -> seconds`` pairs; usable directly as a ``timed`` sink."""

    def __init__(self) -> None:
        self.sections: Dict[str, float] = {}

    def __call__(self, section: str, duration: float) -> None:
        self.sections[section] = self.sections.get(section, 0.0) + duration

    def total(self) -> float:
        return sum(self.sections.values())

    def as_millis(self) -> Dict[str, float]:
        return {name: round(seconds * 1000, 3) for name, seconds in self.sections.items()}


def now_iso() -> str:
    """Current UTC time as second-precision ISO text with a ``Z`` suffix."""

    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
