#!/usr/bin/env python3
"""Summarize questionnaire completeness and stage diagnostics for exported applications."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from fellowship.questionnaire import StrictQuestionnaireResult, assemble_many, summarize_results


class ExportFormatError(ValueError):
    """Raised when the input file is not a list of application records."""


def _load_records(path: Path) -> list[dict[str, Any]]:
    if not path.is_file():
        raise ExportFormatError(f"input file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ExportFormatError(f"{path.name}: invalid JSON ({exc.msg})") from exc

    if isinstance(payload, dict):
        payload = payload.get("records")
    if not isinstance(payload, list):
        raise ExportFormatError(f"{path.name}: expected a list of records or an object with 'records'")
    return [record for record in payload if isinstance(record, dict)]


def _record_row(result: StrictQuestionnaireResult) -> dict[str, object]:
    return {
        "application_id": result.application_id,
        "stage": result.detected_stage.value if result.detected_stage else None,
        "method": result.detection_info.method,
        "answered": result.answered_questions,
        "total": result.total_questions,
        "violations": list(result.stage_validation.violations),
        "warning_count": len(result.detection_info.warnings),
    }


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run the questionnaire normalizer over exported application records."
    )
    parser.add_argument("input", help="JSON file with a list of application records.")
    parser.add_argument(
        "--out",
        default=None,
        help="Output JSON path. Prints to stdout when omitted.",
    )
    args = parser.parse_args()

    try:
        records = _load_records(Path(args.input))
    except ExportFormatError as exc:
        raise SystemExit(f"Summary failed: {exc}") from exc

    results = assemble_many(records)
    report = {
        "input": str(args.input),
        "summary": summarize_results(results),
        "records": [_record_row(result) for result in results],
    }
    rendered = json.dumps(report, indent=2, sort_keys=True)

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(rendered + "\n", encoding="utf-8")
        print(f"Wrote summary for {len(results)} records to {out_path}")
    else:
        print(rendered)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
