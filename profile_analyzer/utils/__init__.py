"""Shared helpers (logging, timing, thread pools)."""

from .concurrency import create_thread_pool, run_isolated
from .logging_utils import get_logger
from .timing import TimingTable, now_iso, timed

__all__ = ["TimingTable", "create_thread_pool", "get_logger", "now_iso", "run_isolated", "timed"]
