"""Flask blueprint exposing the profile analyzer endpoints."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, List, Optional

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from ..ai.commentary import CommentaryService, is_ai_enabled
from ..analytics.engine import analyze_profile
from ..analytics.operations import NormalizedOperation
from ..analytics.review import review_operation
from ..analytics.summary import dataset_overview
from ..config import Settings, settings
from ..errors import (
    AnalysisError,
    ProfileAnalyzerError,
    ProfileParseError,
    ProfileShapeError,
    ProfileValidationError,
)
from ..ingest.parser import parse_profile_text, truncate_large_arrays, validate_profile_entries
from ..ingest.uploader import load_profile_bytes, load_profile_upload
from ..runtime.session import SessionStore
from ..sample_data import generate_sample_data, load_sample_profile
from ..utils.logging_utils import get_logger

LOGGER = get_logger("web.routes")

SORTABLE_FIELDS = {
    "duration_ms",
    "namespace",
    "query_type",
    "docs_examined",
    "nreturned",
    "keys_examined",
    "timestamp",
}

bp = Blueprint("profile_analyzer", __name__, url_prefix="/api")


def _get_settings() -> Settings:
    return current_app.config.get("PROFILE_ANALYZER_SETTINGS") or settings


def _get_session() -> SessionStore:
    store: SessionStore | None = getattr(current_app, "profile_session", None)
    if store is None:
        LOGGER.info("Creating session store for %s", current_app.name)
        store = SessionStore()
        current_app.profile_session = store
    return store


def _get_commentary_service() -> CommentaryService:
    service: CommentaryService | None = getattr(current_app, "profile_commentary_service", None)
    if service is None:
        service = CommentaryService(config=_get_settings())
        current_app.profile_commentary_service = service
    return service


def _error(message: str, cause: str, status: int) -> Any:
    return jsonify({"error": message, "cause": cause}), status


def _run_analysis(entries: List[Any], source: str) -> Any:
    try:
        result = analyze_profile(entries, config=_get_settings())
    except AnalysisError as exc:
        LOGGER.error("Analysis of %s failed: %s", source, exc.describe())
        return jsonify({"error": "Error analyzing data", "cause": str(exc), "engines": exc.describe()}), 500

    payload = result.as_dict()
    _get_session().store_profile(entries, payload, source=source)
    LOGGER.info("Analyzed %d operations from %s", len(entries), source)
    return jsonify(payload)


def _entries_from_request() -> tuple[List[Any], str]:
    cfg = _get_settings()
    upload = request.files.get("file")
    if upload is not None and upload.filename:
        return load_profile_upload(upload, config=cfg), upload.filename

    if request.is_json:
        payload = parse_profile_text(request.get_data(as_text=True))
        if isinstance(payload, dict) and "entries" in payload:
            payload = payload["entries"]
        validate_profile_entries(payload)
        entries, _ = truncate_large_arrays(payload, cfg.max_in_array_length)
        return entries, "request body"

    raw = request.get_data(cache=False)
    if not raw:
        raise ProfileValidationError("No profile data provided")
    return load_profile_bytes(raw, name="request body", config=cfg), "request body"


@bp.route("/analyze", methods=["POST"])
def analyze() -> Any:
    try:
        entries, source = _entries_from_request()
    except ProfileParseError as exc:
        return _error(
            "Failed to parse JSON file. Make sure it contains valid MongoDB profile data.", str(exc), 400
        )
    except (ProfileShapeError, ProfileValidationError) as exc:
        return _error("Invalid MongoDB profile data", str(exc), 400)
    return _run_analysis(entries, source)


@bp.route("/sample", methods=["POST"])
def analyze_sample() -> Any:
    count = _safe_int(request.args.get("generate"))
    if count is not None and count > 0:
        entries = generate_sample_data(min(count, 10_000))
        return _run_analysis(entries, f"generated sample ({len(entries)} operations)")
    return _run_analysis(load_sample_profile(), "bookstore sample")


@bp.route("/analysis", methods=["GET"])
def current_analysis() -> Any:
    analysis = _get_session().analysis()
    if analysis is None:
        return _error("No MongoDB profile data found", "Upload a file first.", 404)
    return jsonify(analysis)


@bp.route("/analysis", methods=["DELETE"])
def clear_analysis() -> Any:
    _get_session().clear()
    return jsonify({"cleared": True})


@bp.route("/status")
def session_status() -> Any:
    return jsonify(_get_session().status())


def _stored_operations() -> Optional[List[NormalizedOperation]]:
    entries = _get_session().entries()
    if entries is None:
        return None
    return [NormalizedOperation.from_entry(entry) for entry in entries if isinstance(entry, dict)]


@bp.route("/overview")
def overview() -> Any:
    operations = _stored_operations()
    if operations is None:
        return _error("No MongoDB profile data found", "Upload a file first.", 404)
    return jsonify(dataset_overview(operations).as_dict())


@bp.route("/operations")
def list_operations() -> Any:
    entries = _get_session().entries()
    if entries is None:
        return _error("No MongoDB profile data found", "Upload a file first.", 404)

    rows = [
        (index, NormalizedOperation.from_entry(entry))
        for index, entry in enumerate(entries)
        if isinstance(entry, dict)
    ]
    collections = request.args.getlist("collection")
    query_types = request.args.getlist("query_type")
    if collections:
        rows = [(i, op) for i, op in rows if op.collection in collections or op.namespace in collections]
    if query_types:
        rows = [(i, op) for i, op in rows if op.query_type in query_types]

    sort_key = request.args.get("sort", "duration_ms")
    if sort_key not in SORTABLE_FIELDS:
        sort_key = "duration_ms"
    descending = request.args.get("direction", "desc").lower() != "asc"
    rows.sort(key=lambda row: _sort_value(row[1], sort_key), reverse=descending)

    total = len(rows)
    limit = _safe_int(request.args.get("limit"))
    if limit is not None and limit > 0:
        rows = rows[:limit]

    results = []
    for index, op in rows:
        item = op.as_dict()
        item["index"] = index
        results.append(item)
    return jsonify({"total": total, "results": results})


@bp.route("/operations/select", methods=["POST"])
def select_operation() -> Any:
    payload = request.get_json(silent=True) or {}
    index = _safe_int(payload.get("index"))
    if index is None:
        return _error("No operation index provided", "Send {\"index\": <n>}.", 400)
    try:
        entry = _get_session().select(index)
    except IndexError as exc:
        return _error("Unknown operation", str(exc), 404)
    return jsonify(_describe_operation(index, entry))


@bp.route("/operations/selected")
def selected_operation() -> Any:
    store = _get_session()
    entry = store.selected()
    if entry is None:
        return _error("No operation selected", "Select an operation first.", 404)
    return jsonify(_describe_operation(store.status()["selected_index"], entry))


@bp.route("/check-ai-status")
def check_ai_status() -> Any:
    return jsonify({"enabled": is_ai_enabled(_get_settings())})


@bp.route("/analyze-operation/status")
def analyze_operation_status() -> Any:
    return jsonify(_get_session().commentary.snapshot())


@bp.route("/analyze-operation", methods=["DELETE"])
def dismiss_operation_analysis() -> Any:
    _get_session().commentary.reset()
    return jsonify(_get_session().commentary.snapshot())


@bp.route("/analyze-operation", methods=["POST"])
def analyze_operation() -> Any:
    service = _get_commentary_service()
    if not service.enabled:
        return _error("AI analysis is not available", "ANTHROPIC_API_KEY is not configured.", 503)

    payload = request.get_json(silent=True) or {}
    operation = payload.get("operation")
    if operation is None:
        operation = _get_session().selected()
    if not isinstance(operation, dict):
        return _error("No operation provided", "Send {\"operation\": {...}} or select one first.", 400)

    commentary = _get_session().commentary
    commentary.reset()
    token = commentary.start()
    # Pull the first chunk now so connection failures still map to a 500.
    chunks = service.stream(operation)
    try:
        first = next(chunks)
    except StopIteration:
        first = None
    except ProfileAnalyzerError as exc:
        LOGGER.exception("Error in analyze-operation")
        commentary.fail(str(exc), token=token)
        return jsonify(
            {
                "problem": "Failed to analyze operation",
                "cause": f"An internal error occurred while trying to analyze the operation: {exc}",
            }
        ), 500

    def _generate() -> Iterator[str]:
        if first is None:
            commentary.fail("The model returned no analysis", token=token)
            yield json.dumps({"error": "The model returned no analysis"}) + "\n"
            return
        last = first
        try:
            if not commentary.receive(last, token=token):
                LOGGER.info("AI commentary dismissed while streaming")
                return
            yield json.dumps({"partial": last.as_dict()}) + "\n"
            for partial in chunks:
                if not commentary.receive(partial, token=token):
                    LOGGER.info("AI commentary dismissed while streaming")
                    return
                last = partial
                yield json.dumps({"partial": partial.as_dict()}) + "\n"
        except ProfileAnalyzerError as exc:
            LOGGER.warning("AI commentary stream ended early: %s", exc)
            commentary.fail(str(exc), token=token)
            yield json.dumps({"error": str(exc)}) + "\n"
            return
        if commentary.complete(last, token=token):
            yield json.dumps({"result": last.as_dict(), "done": True}) + "\n"

    return Response(stream_with_context(_generate()), mimetype="application/x-ndjson")


def _describe_operation(index: Any, entry: Any) -> Dict[str, Any]:
    operation = NormalizedOperation.from_entry(entry if isinstance(entry, dict) else {})
    return {
        "index": index,
        "operation": operation.as_dict(),
        "raw": entry,
        "review": review_operation(operation).as_dict(),
    }


def _sort_value(operation: NormalizedOperation, key: str) -> Any:
    value = getattr(operation, key)
    if key == "timestamp":
        return value.timestamp() if value is not None else 0
    return value


def _safe_int(raw: Any) -> Optional[int]:
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None
