"""AI commentary for a single profiled operation.

The service asks Claude for a forced tool call whose input is the
commentary record, and streams the tool input as it is generated. Every
yielded :class:`CommentaryResult` is a best-effort view of the partial
JSON received so far; the last one is complete.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

import anthropic

from ..analytics.operations import NormalizedOperation
from ..config import Settings, settings
from ..errors import CommentaryError, CommentaryUnavailable
from ..utils.logging_utils import get_logger

LOGGER = get_logger("ai.commentary")

SEVERITIES = ("info", "warning", "danger")
TOOL_NAME = "report_operation_analysis"

SYSTEM_PROMPT = (
    "You are a MongoDB performance expert. Analyze the profiled operation you are given "
    "and report your findings through the provided tool."
)

COMMENTARY_TOOL: Dict[str, Any] = {
    "name": TOOL_NAME,
    "description": "Report the performance analysis of one MongoDB operation.",
    "input_schema": {
        "type": "object",
        "properties": {
            "performance_analysis": {
                "type": "array",
                "description": "The performance analysis of the operation",
                "items": {
                    "type": "object",
                    "properties": {
                        "severity": {"type": "string", "enum": list(SEVERITIES)},
                        "message": {"type": "string"},
                    },
                    "required": ["severity", "message"],
                },
            },
            "suggested_indexes": {
                "type": "array",
                "description": "Indexes that could improve the operation's performance",
                "items": {
                    "type": "object",
                    "properties": {
                        "index_definition_text": {
                            "type": "string",
                            "description": "The index creation statement",
                        },
                        "rationale_message": {
                            "type": "string",
                            "description": "Why the index helps and how it affects the query",
                        },
                    },
                    "required": ["index_definition_text", "rationale_message"],
                },
            },
            "suggested_query_text": {
                "type": "string",
                "description": "A rewritten version of the operation, if one would perform better",
            },
        },
        "required": ["performance_analysis", "suggested_indexes", "suggested_query_text"],
    },
}


@dataclass(frozen=True)
class PerformanceNote:
    severity: str
    message: str


@dataclass(frozen=True)
class IndexAdvice:
    index_definition_text: str
    rationale_message: str


@dataclass
class CommentaryResult:
    performance_analysis: List[PerformanceNote] = field(default_factory=list)
    suggested_indexes: List[IndexAdvice] = field(default_factory=list)
    suggested_query_text: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "CommentaryResult":
        """Coerce a possibly partial tool input; incomplete items are skipped."""

        if not isinstance(payload, Mapping):
            return cls()

        notes: List[PerformanceNote] = []
        for item in payload.get("performance_analysis") or []:
            if not isinstance(item, Mapping):
                continue
            severity = item.get("severity")
            message = item.get("message")
            if severity in SEVERITIES and isinstance(message, str):
                notes.append(PerformanceNote(severity, message))

        indexes: List[IndexAdvice] = []
        for item in payload.get("suggested_indexes") or []:
            if not isinstance(item, Mapping):
                continue
            definition = item.get("index_definition_text")
            if isinstance(definition, str) and definition:
                rationale = item.get("rationale_message")
                indexes.append(IndexAdvice(definition, rationale if isinstance(rationale, str) else ""))

        query = payload.get("suggested_query_text")
        return cls(notes, indexes, query if isinstance(query, str) else "")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "performance_analysis": [
                {"severity": note.severity, "message": note.message} for note in self.performance_analysis
            ],
            "suggested_indexes": [
                {
                    "index_definition_text": advice.index_definition_text,
                    "rationale_message": advice.rationale_message,
                }
                for advice in self.suggested_indexes
            ],
            "suggested_query_text": self.suggested_query_text,
        }


def is_ai_enabled(config: Optional[Settings] = None) -> bool:
    cfg = config or settings
    return bool(cfg.ai_enabled and cfg.anthropic_api_key)


def build_operation_payload(operation: Any) -> Dict[str, Any]:
    """JSON-safe description of one operation for the prompt.

    Accepts a :class:`NormalizedOperation`, its ``as_dict()`` form, or a raw
    profiler entry.
    """

    if isinstance(operation, NormalizedOperation):
        normalized = operation.as_dict()
    elif isinstance(operation, Mapping) and "namespace" in operation:
        normalized = dict(operation)
    elif isinstance(operation, Mapping):
        normalized = NormalizedOperation.from_entry(operation).as_dict()
    else:
        raise CommentaryError(f"Cannot describe operation of type {type(operation).__name__}")

    normalized.pop("display_text", None)
    return json.loads(json.dumps(normalized, default=str))


def build_prompt(operation: Any) -> str:
    payload = build_operation_payload(operation)
    return "Analyze this MongoDB operation:\n" + json.dumps(payload, indent=2)


class CommentaryService:
    """Streams commentary from the Anthropic Messages API."""

    def __init__(self, config: Optional[Settings] = None, client: Any = None) -> None:
        self.config = config or settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or is_ai_enabled(self.config)

    def _get_client(self) -> Any:
        if self._client is None:
            if not is_ai_enabled(self.config):
                raise CommentaryUnavailable("AI analysis is not configured (ANTHROPIC_API_KEY is missing)")
            self._client = anthropic.Anthropic(
                api_key=self.config.anthropic_api_key,
                timeout=self.config.ai_timeout_seconds,
            )
        return self._client

    def stream(self, operation: Any) -> Iterator[CommentaryResult]:
        client = self._get_client()
        prompt = build_prompt(operation)
        LOGGER.info("Requesting AI commentary (model=%s, prompt=%d chars)", self.config.ai_model, len(prompt))
        start = time.perf_counter()

        final_input: Any = None
        try:
            with client.messages.stream(
                model=self.config.ai_model,
                max_tokens=self.config.ai_max_tokens,
                system=SYSTEM_PROMPT,
                tools=[COMMENTARY_TOOL],
                tool_choice={"type": "tool", "name": TOOL_NAME},
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                for event in stream:
                    if getattr(event, "type", None) == "input_json":
                        yield CommentaryResult.from_payload(event.snapshot)
                message = stream.get_final_message()
        except anthropic.APIError as exc:
            LOGGER.warning("AI commentary request failed: %s", exc)
            raise CommentaryError(f"Failed to analyze operation: {exc}") from exc

        for block in getattr(message, "content", None) or []:
            if getattr(block, "type", None) == "tool_use" and getattr(block, "name", None) == TOOL_NAME:
                final_input = block.input
                break
        if final_input is None:
            raise CommentaryError("The model did not return a structured analysis")

        LOGGER.info("AI commentary finished in %.2fs", time.perf_counter() - start)
        yield CommentaryResult.from_payload(final_input)


__all__ = [
    "COMMENTARY_TOOL",
    "CommentaryResult",
    "CommentaryService",
    "IndexAdvice",
    "PerformanceNote",
    "build_operation_payload",
    "build_prompt",
    "is_ai_enabled",
]
