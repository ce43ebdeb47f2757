"""Rule-based assessment of a single operation.

This is what the dashboard shows before (or instead of) AI commentary. The
findings use the same ``{severity, message}`` shape as the commentary
service's ``performance_analysis`` list so both can be rendered alike.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .operations import NormalizedOperation

SEVERITIES = ("info", "warning", "danger")

HIGH_SCAN_RATIO = 10
MODERATE_SCAN_RATIO = 3
SLOW_DURATION_MS = 100
MODERATE_DURATION_MS = 50


@dataclass(frozen=True)
class Finding:
    severity: str
    title: str
    message: str

    def as_dict(self) -> Dict[str, str]:
        return {"severity": self.severity, "title": self.title, "message": self.message}


@dataclass
class OperationReview:
    findings: List[Finding] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    performing_well: bool = False

    @property
    def worst_severity(self) -> str:
        if not self.findings:
            return "info"
        return max((f.severity for f in self.findings), key=SEVERITIES.index)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "findings": [finding.as_dict() for finding in self.findings],
            "suggestions": list(self.suggestions),
            "performing_well": self.performing_well,
            "worst_severity": self.worst_severity,
        }


def format_duration(millis: float) -> str:
    if millis < 1:
        return f"{millis * 1000:.0f}µs"
    if millis < 1000:
        return f"{millis:.0f}ms"
    return f"{millis / 1000:.2f}s"


def _guarded_ratio(operation: NormalizedOperation) -> float:
    return operation.docs_examined / max(1, operation.nreturned)


def _scan_ratio_finding(operation: NormalizedOperation) -> Finding | None:
    if not (operation.docs_examined > 0 and operation.nreturned > 0):
        return None
    ratio = _guarded_ratio(operation)
    docs = f"{operation.docs_examined:,.0f}"
    returned = f"{operation.nreturned:,.0f}"
    title = f"Scan Ratio: {ratio:.1f}:1"
    if ratio > HIGH_SCAN_RATIO:
        return Finding(
            "danger",
            title,
            f"High scan ratio: MongoDB had to examine {docs} documents to return only {returned} results. "
            "Consider creating an index on the fields used in your query filters.",
        )
    if ratio > MODERATE_SCAN_RATIO:
        return Finding(
            "warning",
            title,
            f"Moderate scan ratio: Examining {docs} documents for {returned} results could be improved with better indexes.",
        )
    return Finding(
        "info",
        title,
        f"Good scan ratio: MongoDB only needed to examine {docs} documents to return {returned} results.",
    )


def _plan_finding(operation: NormalizedOperation) -> Finding | None:
    plan = operation.plan_summary
    if not plan:
        return None
    if "COLLSCAN" in plan:
        return Finding(
            "danger",
            "Query Execution Plan",
            f"Collection scan detected ({plan}): MongoDB had to scan the entire collection to find matching "
            "documents. This gets slower as the collection grows. Consider adding an index for this query pattern.",
        )
    if "IXSCAN" in plan:
        return Finding("info", "Query Execution Plan", f"Using index scan ({plan}): the query is served by an index.")
    return Finding("info", "Query Execution Plan", f"Execution plan: {plan}")


def _duration_finding(operation: NormalizedOperation) -> Finding:
    millis = operation.duration_ms
    title = f"Query Duration: {format_duration(millis)}"
    if millis > SLOW_DURATION_MS:
        return Finding(
            "danger",
            title,
            f"Slow operation: this query took longer than {SLOW_DURATION_MS}ms, which could impact application "
            "performance under load.",
        )
    if millis > MODERATE_DURATION_MS:
        return Finding(
            "warning",
            title,
            f"Moderate duration: this query completed in {format_duration(millis)}, acceptable but improvable.",
        )
    return Finding("info", title, f"Fast operation: this query completed in {format_duration(millis)}.")


def _suggestions(operation: NormalizedOperation) -> List[str]:
    suggestions: List[str] = []
    collscan = "COLLSCAN" in operation.plan_summary
    high_ratio = _guarded_ratio(operation) > HIGH_SCAN_RATIO
    slow = operation.duration_ms > SLOW_DURATION_MS
    if not (collscan or high_ratio or slow):
        return suggestions

    if collscan:
        suggestions.append("Create an index on the fields used in the query filter to avoid full collection scans")
    if high_ratio:
        suggestions.append("Improve index selection to reduce the number of documents that need to be examined")
    if slow:
        suggestions.append("Consider adding more specific indexes or refining the query to improve execution time")
    if "SORT" in operation.plan_summary:
        suggestions.append("Add an index with the appropriate sort order to avoid in-memory sorting")
    suggestions.append("Review the query pattern to see if it can be optimized or restructured")
    return suggestions


def review_operation(operation: NormalizedOperation) -> OperationReview:
    findings = [
        finding
        for finding in (_scan_ratio_finding(operation), _plan_finding(operation), _duration_finding(operation))
        if finding is not None
    ]
    performing_well = (
        "COLLSCAN" not in operation.plan_summary
        and _guarded_ratio(operation) <= MODERATE_SCAN_RATIO
        and operation.duration_ms <= MODERATE_DURATION_MS
    )
    return OperationReview(findings=findings, suggestions=_suggestions(operation), performing_well=performing_well)


__all__ = ["Finding", "OperationReview", "SEVERITIES", "format_duration", "review_operation"]
