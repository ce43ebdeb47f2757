"""Exception types raised across the profile analyzer."""

from __future__ import annotations

from typing import Any, Dict, Mapping


class ProfileAnalyzerError(Exception):
    """Base class for every error raised by this package."""


class ProfileParseError(ProfileAnalyzerError):
    """Source text is neither a JSON document nor JSON lines."""


class ProfileShapeError(ProfileAnalyzerError, TypeError):
    """The profile root is not an array of operations."""


class ProfileValidationError(ProfileAnalyzerError):
    """The array holds nothing that looks like profiler output."""


class AnalysisError(ProfileAnalyzerError):
    """One or more analysis engines failed.

    ``completed`` keeps whatever the sibling engines produced so callers can
    inspect it, but it is never handed out as if it were a full result.
    """

    def __init__(
        self,
        failures: Mapping[str, BaseException],
        completed: Mapping[str, Any] | None = None,
    ) -> None:
        self.failures: Dict[str, BaseException] = dict(failures)
        self.completed: Dict[str, Any] = dict(completed or {})
        names = ", ".join(sorted(self.failures))
        super().__init__(f"Analysis failed in: {names}")

    def describe(self) -> Dict[str, str]:
        return {name: f"{type(exc).__name__}: {exc}" for name, exc in self.failures.items()}


class CommentaryUnavailable(ProfileAnalyzerError):
    """AI commentary is switched off or no credential is configured."""


class CommentaryError(ProfileAnalyzerError):
    """The AI commentary request failed or returned an unusable payload."""
