"""Reading profiler exports into plain Python lists."""

from .parser import parse_profile_text, truncate_large_arrays, validate_profile_entries
from .uploader import load_profile_bytes, load_profile_file, load_profile_upload

__all__ = [
    "load_profile_bytes",
    "load_profile_file",
    "load_profile_upload",
    "parse_profile_text",
    "truncate_large_arrays",
    "validate_profile_entries",
]
