"""Load profiler exports from uploads or local files."""

from __future__ import annotations

import gzip
import io
import re
import time
from pathlib import Path
from typing import Any, List, Optional
from zipfile import BadZipFile, ZipFile

from werkzeug.datastructures import FileStorage

from ..config import Settings, settings
from ..errors import ProfileParseError
from ..utils.logging_utils import get_logger
from .parser import parse_profile_text, truncate_large_arrays, validate_profile_entries

PROFILE_PATTERN = re.compile(r"\.(json|jsonl|ndjson|txt|log)(?:$|[-_.])", re.IGNORECASE)

LOGGER = get_logger("ingest.uploader")


def _decompress(raw: bytes, name: str) -> bytes:
    lowered = name.lower()
    if lowered.endswith(".gz"):
        LOGGER.debug("Decompressing gzip upload %s", name)
        try:
            return gzip.decompress(raw)
        except (OSError, EOFError) as exc:
            raise ProfileParseError(f"Failed to decompress {name}: {exc}") from exc
    if lowered.endswith(".zip"):
        try:
            with ZipFile(io.BytesIO(raw)) as archive:
                members = [
                    info for info in archive.infolist()
                    if not info.is_dir() and PROFILE_PATTERN.search(Path(info.filename).name)
                ]
                if not members:
                    raise ProfileParseError(f"No JSON profile export found inside {name}")
                if len(members) > 1:
                    LOGGER.warning(
                        "Archive %s holds %d exports; using %s", name, len(members), members[0].filename
                    )
                return archive.read(members[0])
        except BadZipFile as exc:
            raise ProfileParseError(f"Failed to open archive {name}: {exc}") from exc
    return raw


def load_profile_bytes(
    raw: bytes,
    *,
    name: str = "<upload>",
    config: Optional[Settings] = None,
) -> List[Any]:
    """Decode, parse, validate and sanitize one export."""

    cfg = config or settings
    start = time.perf_counter()
    payload = _decompress(raw, name)
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ProfileParseError(f"{name} is not UTF-8 text: {exc}") from exc

    data = parse_profile_text(text)
    validate_profile_entries(data)
    entries, longest = truncate_large_arrays(data, cfg.max_in_array_length)
    LOGGER.info(
        "Loaded %d operations from %s (%.2f KiB, longest operator array %d) in %.2fs",
        len(entries),
        name,
        len(raw) / 1024,
        longest,
        time.perf_counter() - start,
    )
    return entries


def load_profile_upload(storage: FileStorage, *, config: Optional[Settings] = None) -> List[Any]:
    filename = Path(storage.filename or "upload.json").name
    return load_profile_bytes(storage.read(), name=filename, config=config)


def load_profile_file(path: Path, *, config: Optional[Settings] = None) -> List[Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    return load_profile_bytes(path.read_bytes(), name=path.name, config=config)


__all__ = ["load_profile_bytes", "load_profile_file", "load_profile_upload"]
