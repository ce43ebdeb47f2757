"""Analytics over MongoDB ``system.profile`` snapshots."""

from .analytics import AnalysisResult, analyze_profile, extract_fields, fingerprint
from .errors import AnalysisError, ProfileAnalyzerError, ProfileShapeError

__version__ = "2.0.0"

__all__ = [
    "AnalysisError",
    "AnalysisResult",
    "ProfileAnalyzerError",
    "ProfileShapeError",
    "__version__",
    "analyze_profile",
    "extract_fields",
    "fingerprint",
]
