from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from fellowship.aliases import resolve_key
from fellowship.stages import Stage, other_stage, stage_display_name


class StageValidation(BaseModel):
    is_valid: bool
    violations: list[str] = Field(default_factory=list)


def validate_no_stage_mixing(stage: Stage, available_raw_keys: Iterable[object]) -> StageValidation:
    """Flag raw keys that only make sense for the other stage's question set.

    Keys shared by both alias tables are not violations; they resolve to this
    stage's question.
    """
    opposite = other_stage(stage)
    violations: list[str] = []
    seen: set[str] = set()
    for raw_key in available_raw_keys:
        key = str(raw_key)
        if key in seen:
            continue
        seen.add(key)
        foreign = resolve_key(key, opposite)
        if foreign is None or resolve_key(key, stage) is not None:
            continue
        violations.append(
            f"ContaminationViolation: answer key '{key}' belongs to the "
            f"{stage_display_name(opposite)} question set (resolves to '{foreign}'); excluded from output"
        )
    return StageValidation(is_valid=not violations, violations=violations)
