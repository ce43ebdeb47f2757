"""Command-line helpers for analyzing profiler exports without the web UI."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

from ..analytics.engine import analyze_profile
from ..analytics.filters import extract_fields
from ..analytics.fingerprint import fingerprint
from ..analytics.operations import NormalizedOperation
from ..analytics.review import format_duration, review_operation
from ..config import settings
from ..errors import ProfileAnalyzerError
from ..ingest.uploader import load_profile_file
from ..sample_data import generate_sample_data, load_sample_profile


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MongoDB profiler log analyzer CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze_parser = sub.add_parser("analyze", help="Analyze a system.profile export")
    analyze_parser.add_argument("profile_file", type=Path, help="JSON, JSON lines, .gz or .zip export")
    analyze_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    analyze_parser.add_argument("--limit", type=int, default=10, help="Rows per section")

    sample_parser = sub.add_parser("sample", help="Analyze the built-in demo data")
    sample_parser.add_argument(
        "--generate", type=int, default=None, help="Generate N random operations instead of the bookstore set"
    )
    sample_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    sample_parser.add_argument("--limit", type=int, default=10, help="Rows per section")

    fp_parser = sub.add_parser("fingerprint", help="Print the shape fingerprint of a filter")
    fp_parser.add_argument("filter_json", help='Filter document, e.g. \'{"status": "A"}\'')

    review_parser = sub.add_parser("review", help="Rule-based review of one operation")
    review_parser.add_argument("profile_file", type=Path, help="Profile export to read")
    review_parser.add_argument("--index", type=int, required=True, help="Zero-based operation index")

    return parser


def _print_summary(result: Dict[str, Any], limit: int) -> None:
    print(f"Operations: {result['total_operations']}")
    print(
        f"  total={format_duration(result['total_duration_ms'])} "
        f"avg={format_duration(result['avg_duration_ms'])} "
        f"max={format_duration(result['max_duration_ms'])}"
    )
    print("Collections:")
    for item in result["by_collection"][:limit]:
        print(f"  {item['name']}: count={item['count']} avg_ms={item['avg_duration_ms']:.1f}")
    print("Operation kinds:")
    for item in result["by_operation_kind"][:limit]:
        print(f"  {item['name']}: count={item['count']} avg_ms={item['avg_duration_ms']:.1f}")

    print("Index suggestions:")
    suggestions = [s for s in result["index_suggestions"] if s["suggested_index"]]
    if not suggestions:
        print("  none")
    for item in suggestions[:limit]:
        print(f"  [{item['recommendation_score']}] {item['suggested_index']['command']}")

    print("Query patterns:")
    for group in result["pattern_groups"][:limit]:
        collscan = " COLLSCAN" if group["uses_collection_scan"] else ""
        print(
            f"  {group['occurrence_count']}x avg_ms={group['avg_duration_ms']:.1f}{collscan} "
            f"{group['pattern_key']}"
        )


def _emit(result: Dict[str, Any], *, as_json: bool, limit: int) -> None:
    if as_json:
        print(json.dumps(result, indent=2, default=str))
    else:
        _print_summary(result, max(1, min(limit, 100)))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "analyze":
            entries = load_profile_file(args.profile_file, config=settings)
            _emit(analyze_profile(entries).as_dict(), as_json=args.json, limit=args.limit)
            return 0

        if args.command == "sample":
            entries = generate_sample_data(args.generate) if args.generate else load_sample_profile()
            _emit(analyze_profile(entries).as_dict(), as_json=args.json, limit=args.limit)
            return 0

        if args.command == "fingerprint":
            try:
                filter_doc = json.loads(args.filter_json)
            except json.JSONDecodeError as exc:
                print(f"Invalid filter JSON: {exc}", file=sys.stderr)
                return 1
            print(fingerprint(filter_doc))
            print(f"fields: {', '.join(extract_fields(filter_doc)) or '<none>'}")
            return 0

        if args.command == "review":
            entries = load_profile_file(args.profile_file, config=settings)
            if not 0 <= args.index < len(entries):
                print(f"No operation at index {args.index} ({len(entries)} loaded)", file=sys.stderr)
                return 1
            entry = entries[args.index]
            operation = NormalizedOperation.from_entry(entry if isinstance(entry, dict) else {})
            review = review_operation(operation)
            print(f"{operation.namespace} {operation.query_type} {format_duration(operation.duration_ms)}")
            for finding in review.findings:
                print(f"  [{finding.severity}] {finding.title}: {finding.message}")
            for suggestion in review.suggestions:
                print(f"  - {suggestion}")
            if review.performing_well:
                print("  This operation is performing well.")
            return 0
    except FileNotFoundError as exc:
        print(f"File not found: {exc}", file=sys.stderr)
        return 1
    except ProfileAnalyzerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
