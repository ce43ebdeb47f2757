"""Pure analytics over profiler snapshots."""

from .engine import AnalysisResult, analyze_profile
from .filters import extract_fields, normalize_filter
from .fingerprint import fingerprint
from .index_suggestions import consolidate_suggestions, recommend_indexes, recommendation_score
from .operations import NormalizedOperation
from .patterns import cluster_patterns
from .review import review_operation
from .summary import dataset_overview, summarize

__all__ = [
    "AnalysisResult",
    "NormalizedOperation",
    "analyze_profile",
    "cluster_patterns",
    "consolidate_suggestions",
    "dataset_overview",
    "extract_fields",
    "fingerprint",
    "normalize_filter",
    "recommend_indexes",
    "recommendation_score",
    "review_operation",
    "summarize",
]
