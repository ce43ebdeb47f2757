"""Optional AI commentary for single operations."""

from .commentary import CommentaryResult, CommentaryService, build_operation_payload, is_ai_enabled
from .state import CommentaryRequest, InvalidTransition, drive

__all__ = [
    "CommentaryRequest",
    "CommentaryResult",
    "CommentaryService",
    "InvalidTransition",
    "build_operation_payload",
    "drive",
    "is_ai_enabled",
]
