from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Literal, Mapping

from pydantic import BaseModel, Field

from fellowship.aliases import exclusive_stage
from fellowship.sources import LocatedAnswers, locate_answers
from fellowship.stages import Stage, stage_display_name

logger = logging.getLogger("fellowship.stage_detection")

DetectionMethod = Literal["declared", "heuristic", "none"]

ANSWER_BAG_STAGE_KEYS = ("productStage", "product_stage")

# The applicant's own productStage answer outranks generic stage columns.
# Answer-bag candidates come first and are added in _declared_candidates.
DECLARED_STAGE_PATHS: tuple[tuple[str, ...], ...] = (
    ("yff_team_registrations", "productStage"),
    ("yff_team_registrations", "product_stage"),
    ("yff_team_registrations", "questionnaire_answers", "productStage"),
    ("yff_team_registrations", "questionnaire_answers", "product_stage"),
    ("productStage",),
    ("product_stage",),
    ("stage",),
    ("selected_stage",),
    ("application_stage",),
    ("yff_team_registrations", "stage"),
    ("yff_team_registrations", "selected_stage"),
)

STAGE_NAME_MAPPINGS: dict[str, Stage] = {
    "idea": Stage.IDEA,
    "ideastage": Stage.IDEA,
    "mlp": Stage.IDEA,
    "workingprototype": Stage.IDEA,
    "prototype": Stage.IDEA,
    "earlyrevenue": Stage.EARLY_REVENUE,
    "earlyrevenuestage": Stage.EARLY_REVENUE,
    "revenue": Stage.EARLY_REVENUE,
    "revenuestage": Stage.EARLY_REVENUE,
}
_PART_SEPARATORS = re.compile(r"[/,|;]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class StageDetection(BaseModel):
    stage: Stage | None = None
    raw_declared_value: str | None = None
    method: DetectionMethod = "none"
    declared_source: str | None = None
    warnings: list[str] = Field(default_factory=list)


def extract_declared_stage(value: Any) -> Stage | None:
    """Map a free-text stage label onto a stage; the first recognized part wins."""
    if not isinstance(value, str):
        return None
    for part in _PART_SEPARATORS.split(value):
        compact = _NON_ALNUM.sub("", part.lower())
        if compact in STAGE_NAME_MAPPINGS:
            return STAGE_NAME_MAPPINGS[compact]
    return None


def infer_stage_from_keys(raw_keys: Iterable[object]) -> Stage | None:
    exclusive = {exclusive_stage(key) for key in raw_keys}
    if Stage.EARLY_REVENUE in exclusive:
        return Stage.EARLY_REVENUE
    if Stage.IDEA in exclusive:
        return Stage.IDEA
    return None


def _lookup(record: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    current: Any = record
    for segment in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)
    return current


def _declared_candidates(record: Mapping[str, Any], answers: LocatedAnswers) -> list[tuple[str, str]]:
    found: list[tuple[str, Any]] = []
    # A record that is its own answer bag is covered by the top-level paths.
    if answers.data is not None and answers.source_path not in (None, "record"):
        bag_path = answers.source_path.removesuffix(" (json)")
        found.extend((f"{bag_path}.{key}", answers.data.get(key)) for key in ANSWER_BAG_STAGE_KEYS)
    found.extend((".".join(path), _lookup(record, path)) for path in DECLARED_STAGE_PATHS)

    candidates: list[tuple[str, str]] = []
    seen: set[str] = set()
    for source, value in found:
        if source in seen or not isinstance(value, str) or not value.strip():
            continue
        seen.add(source)
        candidates.append((source, value.strip()))
    return candidates


def detect_stage(record: Mapping[str, Any], *, answers: LocatedAnswers | None = None) -> StageDetection:
    located = answers if answers is not None else locate_answers(record)
    warnings: list[str] = []
    heuristic_stage = infer_stage_from_keys(located.keys)

    candidates = _declared_candidates(record, located)
    raw_declared_value = candidates[0][1] if candidates else None
    for source, value in candidates:
        declared = extract_declared_stage(value)
        if declared is None:
            warnings.append(f"UnrecognizedDeclaredStage: could not map {source} value '{value}' to a known stage")
            continue
        if heuristic_stage is not None and heuristic_stage is not declared:
            warnings.append(
                f"AmbiguousStageSignal: declared stage {stage_display_name(declared)} disagrees with answer keys "
                f"suggesting {stage_display_name(heuristic_stage)}; using declared stage"
            )
        return StageDetection(
            stage=declared,
            raw_declared_value=value,
            method="declared",
            declared_source=source,
            warnings=warnings,
        )

    if not candidates:
        warnings.append("DeclaredStageMissing: no declared stage field found on the application")

    if heuristic_stage is not None:
        warnings.append(
            f"HeuristicStage: stage inferred as {stage_display_name(heuristic_stage)} from answer keys; "
            "no usable declared stage"
        )
        return StageDetection(
            stage=heuristic_stage,
            raw_declared_value=raw_declared_value,
            method="heuristic",
            warnings=warnings,
        )

    warnings.append("StageUndetected: neither a declared stage nor stage-specific answer keys were found")
    logger.debug("stage_undetected", extra={"event": "stage_undetected", "candidate_count": len(candidates)})
    return StageDetection(raw_declared_value=raw_declared_value, method="none", warnings=warnings)
