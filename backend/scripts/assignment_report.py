#!/usr/bin/env python3
import argparse
import json
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

MARKER = "assignment_telemetry="


def _iter_lines(paths: List[str]) -> Iterable[str]:
    if not paths:
        for line in sys.stdin:
            yield line.rstrip("\n")
        return
    for path in paths:
        with open(path, "r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                yield line.rstrip("\n")


def parse_payload(line: str) -> Optional[Dict[str, Any]]:
    _, found, raw = line.partition(MARKER)
    if not found:
        return None
    try:
        value = json.loads(raw.strip())
    except ValueError:
        return None
    if not isinstance(value, dict):
        return None
    return value


def build_report(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    method_counts: Counter[str] = Counter()
    match_type_counts: Counter[str] = Counter()
    category_counts: Counter[str] = Counter()
    provider_counts: Counter[str] = Counter()

    for row in rows:
        method_counts[str(row.get("assignment_method", "unknown"))] += 1
        match_type_counts[str(row.get("match_type") or "unknown")] += 1
        category_counts[str(row.get("category", "unknown"))] += 1
        provider_counts[str(row.get("provider_id", "unknown"))] += 1

    total = len(rows)
    synthesized = match_type_counts.get("synthesized", 0)
    return {
        "total_bookings": total,
        "assignment_methods": dict(method_counts),
        "match_types": dict(match_type_counts),
        "categories_top10": dict(category_counts.most_common(10)),
        "providers_top10": dict(provider_counts.most_common(10)),
        "synthesized_rate": round(synthesized / total, 4) if total else 0.0,
    }


def print_human(report: Dict[str, Any]) -> None:
    print(f"Total bookings: {report['total_bookings']}")
    print(f"Synthesized listing rate: {report['synthesized_rate']:.2%}")
    print("Assignment methods:")
    for method, count in sorted(report["assignment_methods"].items(), key=lambda x: x[1], reverse=True):
        print(f"  - {method}: {count}")
    print("Match types:")
    for match_type, count in sorted(report["match_types"].items(), key=lambda x: x[1], reverse=True):
        print(f"  - {match_type}: {count}")
    print("Busiest providers:")
    for provider_id, count in report["providers_top10"].items():
        print(f"  - {provider_id}: {count}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Summarize assignment_telemetry log lines.")
    parser.add_argument("log_files", nargs="*", help="Log files to parse. If omitted, read stdin.")
    parser.add_argument("--json-out", default="", help="Optional path to write JSON summary.")
    args = parser.parse_args()

    rows = [payload for payload in (parse_payload(line) for line in _iter_lines(args.log_files)) if payload]
    report = build_report(rows)
    print_human(report)

    if args.json_out:
        path = Path(args.json_out)
        path.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
        print(f"Wrote report: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
