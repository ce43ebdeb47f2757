"""State machine for one AI commentary request.

Idle -> Requesting -> StreamingPartial* -> Complete | Failed. ``reset``
returns to Idle from anywhere (the user dismissed or cancelled it). A new
request may start once the previous one has settled.
"""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Optional, Union

from ..errors import ProfileAnalyzerError
from ..utils.logging_utils import get_logger
from ..utils.timing import now_iso
from .commentary import CommentaryResult, CommentaryService

LOGGER = get_logger("ai.state")


class InvalidTransition(ProfileAnalyzerError):
    """An event arrived that the current state does not accept."""


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Requesting:
    name = "requesting"


@dataclass(frozen=True)
class StreamingPartial:
    partial: CommentaryResult
    name = "streaming"


@dataclass(frozen=True)
class Complete:
    result: CommentaryResult
    name = "complete"


@dataclass(frozen=True)
class Failed:
    error: str
    name = "failed"


CommentaryState = Union[Idle, Requesting, StreamingPartial, Complete, Failed]

_ACTIVE = (Requesting, StreamingPartial)
_SETTLED = (Idle, Complete, Failed)


class CommentaryRequest:
    """Thread-safe holder of the current :data:`CommentaryState`.

    Every ``start`` and ``reset`` opens a new generation. ``start`` returns
    its generation as a token; stream events that carry an older token are
    dropped, so a dismissed or superseded stream cannot write into the
    request that replaced it.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._state: CommentaryState = Idle()
        self._generation = 0
        self._updated_at = now_iso()

    @property
    def state(self) -> CommentaryState:
        with self._lock:
            return self._state

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._generation

    def _move(self, allowed: tuple, target: CommentaryState, token: Optional[int] = None) -> bool:
        with self._lock:
            if token is not None and token != self._generation:
                LOGGER.debug("Ignoring %s event from stale generation %d", target.name, token)
                return False
            if not isinstance(self._state, allowed):
                raise InvalidTransition(f"Cannot go from {self._state.name} to {target.name}")
            self._state = target
            self._updated_at = now_iso()
            return True

    def start(self) -> int:
        with self._lock:
            if not isinstance(self._state, _SETTLED):
                raise InvalidTransition(f"Cannot go from {self._state.name} to requesting")
            self._generation += 1
            self._state = Requesting()
            self._updated_at = now_iso()
            return self._generation

    def receive(self, partial: CommentaryResult, token: Optional[int] = None) -> bool:
        return self._move(_ACTIVE, StreamingPartial(partial), token)

    def complete(self, result: CommentaryResult, token: Optional[int] = None) -> bool:
        return self._move(_ACTIVE, Complete(result), token)

    def fail(self, error: str, token: Optional[int] = None) -> bool:
        return self._move(_ACTIVE, Failed(error), token)

    def reset(self) -> None:
        with self._lock:
            self._generation += 1
            self._state = Idle()
            self._updated_at = now_iso()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            state = self._state
            snapshot: Dict[str, Any] = {"status": state.name, "updated_at": self._updated_at}
        if isinstance(state, StreamingPartial):
            snapshot["partial"] = state.partial.as_dict()
        elif isinstance(state, Complete):
            snapshot["result"] = state.result.as_dict()
        elif isinstance(state, Failed):
            snapshot["error"] = state.error
        return snapshot


def drive(
    service: CommentaryService,
    operation: Any,
    request: Optional[CommentaryRequest] = None,
) -> CommentaryRequest:
    """Run one commentary stream to completion through the state machine.

    Service failures end in :class:`Failed`; they are never raised, because
    commentary is optional next to the analysis itself. If the request is
    dismissed or restarted while streaming, the rest of the stream is
    discarded and the request is left to its new owner.
    """

    request = request or CommentaryRequest()
    token = request.start()
    last: Optional[CommentaryResult] = None
    try:
        for partial in service.stream(operation):
            if not request.receive(partial, token=token):
                LOGGER.info("Commentary request cancelled while streaming")
                return request
            last = partial
    except ProfileAnalyzerError as exc:
        if not request.fail(str(exc), token=token):
            LOGGER.info("Discarding error from cancelled commentary request: %s", exc)
        return request

    if last is None:
        request.fail("The model returned no analysis", token=token)
    else:
        request.complete(last, token=token)
    return request


__all__ = [
    "CommentaryRequest",
    "CommentaryState",
    "Complete",
    "Failed",
    "Idle",
    "InvalidTransition",
    "Requesting",
    "StreamingPartial",
    "drive",
]
