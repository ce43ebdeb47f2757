"""Concurrency helpers for running analysis engines side by side."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .logging_utils import get_logger
from .timing import timed

LOGGER = get_logger("utils.concurrency")

Task = Callable[[], Any]


def create_thread_pool(max_workers: Optional[int] = None) -> ThreadPoolExecutor:
    """Build a thread pool with a project-specific default name prefix."""

    return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="profile-analyzer")


def run_isolated(
    tasks: Mapping[str, Task],
    *,
    parallel: bool = False,
    sink: Optional[Callable[[str, float], None]] = None,
) -> Tuple[Dict[str, Any], Dict[str, BaseException]]:
    """Run every named task, keeping failures from leaking into siblings.

    Returns ``(results, failures)``. A task that raises contributes only to
    ``failures``; the remaining tasks always run to completion.
    """

    report = sink or (lambda _section, _duration: None)
    results: Dict[str, Any] = {}
    failures: Dict[str, BaseException] = {}

    def _call(name: str, task: Task) -> Any:
        with timed(name, report):
            return task()

    if parallel and len(tasks) > 1:
        with create_thread_pool(max_workers=len(tasks)) as pool:
            futures = {name: pool.submit(_call, name, task) for name, task in tasks.items()}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as exc:
                    LOGGER.exception("Task %s failed", name)
                    failures[name] = exc
        return results, failures

    for name, task in tasks.items():
        try:
            results[name] = _call(name, task)
        except Exception as exc:
            LOGGER.exception("Task %s failed", name)
            failures[name] = exc
    return results, failures
