"""Parsing and validation of profiler exports."""

from __future__ import annotations

import copy
import json
from typing import Any, List, Mapping, Tuple

from ..errors import ProfileParseError, ProfileShapeError, ProfileValidationError
from ..utils.logging_utils import get_logger

LOGGER = get_logger("ingest.parser")

PROFILE_FIELDS = ("millis", "op", "ns")
ARRAY_OPERATORS = frozenset({"$in", "$nin", "$all"})
COMBINATORS = frozenset({"$and", "$or", "$nor"})


def parse_profile_text(text: str) -> Any:
    """Parse a JSON document, falling back to JSON lines.

    ``db.system.profile`` exports come either as one array or as one document
    per line (``mongoexport`` default). When both strategies fail the error
    from the whole-document attempt is reported.
    """

    try:
        data = json.loads(text)
        LOGGER.debug("Parsed profile export as a single JSON document")
        return data
    except json.JSONDecodeError as exc:
        document_error = exc

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise ProfileParseError(f"Failed to parse JSON: {document_error}") from document_error
    try:
        data = [json.loads(line) for line in lines]
    except json.JSONDecodeError:
        raise ProfileParseError(f"Failed to parse JSON: {document_error}") from document_error
    LOGGER.info("Parsed profile export as JSON lines (%d entries)", len(data))
    return data


def validate_profile_entries(data: Any) -> None:
    """Reject data that is not a non-empty array of profiler-looking entries."""

    if not isinstance(data, list):
        raise ProfileShapeError(
            "The uploaded file does not contain a valid MongoDB profile data array."
        )
    if not data:
        raise ProfileValidationError(
            "The uploaded file does not contain a valid MongoDB profile data array."
        )
    if not any(
        isinstance(item, Mapping) and any(key in item for key in PROFILE_FIELDS) for item in data
    ):
        raise ProfileValidationError(
            "The file does not appear to contain MongoDB profile data. "
            'Expected fields like "millis", "op", or "ns" were not found.'
        )


def _cap_arrays(doc: Any, max_length: int) -> int:
    """Truncate operator arrays inside *doc* in place; return the longest seen."""

    if not isinstance(doc, dict):
        return 0
    longest = 0
    for key, value in list(doc.items()):
        if key in COMBINATORS and isinstance(value, list):
            for condition in value:
                longest = max(longest, _cap_arrays(condition, max_length))
        elif key in ARRAY_OPERATORS and isinstance(value, list):
            longest = max(longest, len(value))
            if len(value) > max_length:
                doc[key] = value[:max_length]
        elif isinstance(value, dict):
            longest = max(longest, _cap_arrays(value, max_length))
    return longest


def truncate_large_arrays(entries: List[Any], max_length: int = 10) -> Tuple[List[Any], int]:
    """Return a deep copy of *entries* with ``$in``/``$nin``/``$all`` lists capped.

    Only the predicate locations are touched: ``query``, ``command.filter``
    and every ``$match`` stage. The second element of the result is the
    longest operator array encountered before truncation.
    """

    if not isinstance(entries, list):
        raise ProfileShapeError("Input must be an array of MongoDB query log objects")

    entries_copy = copy.deepcopy(entries)
    longest = 0
    for entry in entries_copy:
        if not isinstance(entry, dict):
            continue
        command = entry.get("command")
        if isinstance(command, dict):
            pipeline = command.get("pipeline")
            if isinstance(pipeline, list):
                for stage in pipeline:
                    if isinstance(stage, dict) and isinstance(stage.get("$match"), dict):
                        longest = max(longest, _cap_arrays(stage["$match"], max_length))
            longest = max(longest, _cap_arrays(command.get("filter"), max_length))
        longest = max(longest, _cap_arrays(entry.get("query"), max_length))

    if longest > max_length:
        LOGGER.info("Truncated operator arrays of up to %d items to %d", longest, max_length)
    return entries_copy, longest


__all__ = ["parse_profile_text", "truncate_large_arrays", "validate_profile_entries"]
