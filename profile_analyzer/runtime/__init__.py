"""Process-local runtime state for the web layer."""

from .session import SessionStore

__all__ = ["SessionStore"]
