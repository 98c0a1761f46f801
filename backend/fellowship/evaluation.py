from __future__ import annotations

import json
import re
from typing import Any, Mapping

from pydantic import BaseModel, Field


_NUMERIC = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(?:/\s*\d+(?:\.\d+)?)?\s*$")


class EvaluationScore(BaseModel):
    score: float | None = None
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    raw_feedback: str | None = None


def coerce_score(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMERIC.match(value)
        if match:
            return float(match.group(1))
    return None


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def load_evaluation_blob(record: Mapping[str, Any]) -> Mapping[str, Any]:
    blob = record.get("evaluation_data")
    if isinstance(blob, str):
        try:
            blob = json.loads(blob)
        except json.JSONDecodeError:
            return {}
    if not isinstance(blob, Mapping):
        return {}
    return blob


def extract_evaluation_scores(record: Mapping[str, Any]) -> dict[str, EvaluationScore]:
    scores = load_evaluation_blob(record).get("scores")
    if not isinstance(scores, Mapping):
        return {}

    parsed: dict[str, EvaluationScore] = {}
    for key, entry in scores.items():
        if not isinstance(entry, Mapping):
            continue
        improvements = entry.get("areas_for_improvement") or entry.get("improvements")
        raw_feedback = entry.get("raw_feedback")
        parsed[str(key)] = EvaluationScore(
            score=coerce_score(entry.get("score")),
            strengths=_string_list(entry.get("strengths")),
            improvements=_string_list(improvements),
            raw_feedback=str(raw_feedback) if raw_feedback is not None else None,
        )
    return parsed


def evaluation_for(scores: Mapping[str, EvaluationScore], canonical_key: str) -> EvaluationScore | None:
    # Exact key only; a score stored under a legacy alias is never reassigned.
    return scores.get(canonical_key)


def extract_overall_score(record: Mapping[str, Any]) -> float | None:
    overall = coerce_score(record.get("overall_score"))
    if overall is not None:
        return overall
    return coerce_score(load_evaluation_blob(record).get("overall_score"))
