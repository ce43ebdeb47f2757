"""Entry point that runs every analysis engine over one profile snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import Settings, settings
from ..errors import AnalysisError, ProfileShapeError
from ..utils.concurrency import run_isolated
from ..utils.logging_utils import get_logger
from ..utils.timing import TimingTable
from .index_suggestions import ConsolidatedIndex, IndexSuggestion, consolidate_suggestions, recommend_indexes
from .patterns import QueryPatternGroup, cluster_patterns
from .summary import GroupStats, Summary, summarize

LOGGER = get_logger("analytics.engine")


@dataclass
class AnalysisResult:
    total_operations: int = 0
    total_duration_ms: float = 0
    avg_duration_ms: float = 0
    max_duration_ms: float = 0
    by_collection: List[GroupStats] = field(default_factory=list)
    by_operation_kind: List[GroupStats] = field(default_factory=list)
    index_suggestions: List[IndexSuggestion] = field(default_factory=list)
    pattern_groups: List[QueryPatternGroup] = field(default_factory=list)
    consolidated_indexes: List[ConsolidatedIndex] = field(default_factory=list)

    @classmethod
    def assemble(
        cls,
        summary: Summary,
        suggestions: List[IndexSuggestion],
        groups: List[QueryPatternGroup],
    ) -> "AnalysisResult":
        return cls(
            total_operations=summary.total_operations,
            total_duration_ms=summary.total_duration_ms,
            avg_duration_ms=summary.avg_duration_ms,
            max_duration_ms=summary.max_duration_ms,
            by_collection=summary.by_collection,
            by_operation_kind=summary.by_operation_kind,
            index_suggestions=suggestions,
            pattern_groups=groups,
            consolidated_indexes=consolidate_suggestions(suggestions),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_operations": self.total_operations,
            "total_duration_ms": self.total_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "by_collection": [group.as_dict() for group in self.by_collection],
            "by_operation_kind": [group.as_dict() for group in self.by_operation_kind],
            "index_suggestions": [suggestion.as_dict() for suggestion in self.index_suggestions],
            "pattern_groups": [group.as_dict() for group in self.pattern_groups],
            "consolidated_indexes": [index.as_dict() for index in self.consolidated_indexes],
        }


def analyze_profile(
    entries: Sequence[Any],
    *,
    config: Optional[Settings] = None,
    parallel: Optional[bool] = None,
) -> AnalysisResult:
    """Analyze a list of profiler entries.

    Only a non-list root raises :class:`ProfileShapeError`; empty or oddly
    shaped entries degrade to zeroed metrics. The three engines run in
    isolation from each other. If any of them fails the others still finish
    and an :class:`AnalysisError` carrying both sides is raised.
    """

    if not isinstance(entries, (list, tuple)):
        raise ProfileShapeError(
            f"Profile data must be an array of operations, got {type(entries).__name__}"
        )

    cfg = config or settings
    run_parallel = cfg.parallel_analysis if parallel is None else parallel
    snapshot = list(entries)
    timings = TimingTable()

    results, failures = run_isolated(
        {
            "summary": lambda: summarize(snapshot),
            "index_suggestions": lambda: recommend_indexes(snapshot),
            "pattern_groups": lambda: cluster_patterns(
                snapshot, limit=cfg.pattern_limit, example_limit=cfg.example_limit
            ),
        },
        parallel=run_parallel,
        sink=timings,
    )
    LOGGER.debug("Analyzed %d operations; engine timings (ms): %s", len(snapshot), timings.as_millis())

    if failures:
        LOGGER.error("Analysis of %d operations failed in %s", len(snapshot), ", ".join(sorted(failures)))
        raise AnalysisError(failures, results)

    return AnalysisResult.assemble(
        results["summary"], results["index_suggestions"], results["pattern_groups"]
    )


__all__ = ["AnalysisResult", "analyze_profile"]
