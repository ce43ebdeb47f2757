"""Tests for the rule-based single operation review."""

import pytest

from profile_analyzer.analytics.operations import NormalizedOperation
from profile_analyzer.analytics.review import format_duration, review_operation


def _op(**entry):
    return NormalizedOperation.from_entry(entry)


def test_collscan_operation_is_flagged(collscan_entry):
    review = review_operation(NormalizedOperation.from_entry(collscan_entry))
    severities = [finding.severity for finding in review.findings]
    assert severities == ["danger", "danger", "danger"]
    assert review.findings[0].title == "Scan Ratio: 6000.0:1"
    assert review.worst_severity == "danger"
    assert not review.performing_well
    assert review.suggestions[0].startswith("Create an index")
    assert review.suggestions[-1].startswith("Review the query pattern")


def test_fast_indexed_operation_performs_well():
    review = review_operation(_op(millis=4, docsExamined=2, nreturned=2, planSummary="IXSCAN { a: 1 }"))
    assert [f.severity for f in review.findings] == ["info", "info", "info"]
    assert review.performing_well
    assert review.suggestions == []
    assert review.worst_severity == "info"


def test_moderate_thresholds():
    review = review_operation(_op(millis=75, docsExamined=40, nreturned=10))
    assert [f.severity for f in review.findings] == ["warning", "warning"]
    assert not review.performing_well


def test_scan_ratio_finding_needs_both_counters():
    review = review_operation(_op(millis=1, docsExamined=500, nreturned=0))
    assert [f.title for f in review.findings] == ["Query Duration: 1ms"]


def test_sort_suggestion_only_with_other_problems():
    slow_sort = review_operation(_op(millis=300, planSummary="IXSCAN { a: 1 }, SORT"))
    assert any("sort order" in s for s in slow_sort.suggestions)
    fast_sort = review_operation(_op(millis=3, planSummary="SORT"))
    assert fast_sort.suggestions == []


@pytest.mark.parametrize("millis, text", [(0.25, "250µs"), (42, "42ms"), (1500, "1.50s")])
def test_format_duration(millis, text):
    assert format_duration(millis) == text
