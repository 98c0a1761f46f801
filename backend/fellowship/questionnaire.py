from __future__ import annotations

from datetime import date
import json
import logging
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, Field

from fellowship.aliases import aliases_for, resolve_key
from fellowship.contamination import StageValidation, validate_no_stage_mixing
from fellowship.evaluation import (
    EvaluationScore,
    evaluation_for,
    extract_evaluation_scores,
    extract_overall_score,
)
from fellowship.sources import LocatedAnswers, locate_answers
from fellowship.stage_detection import DetectionMethod, detect_stage
from fellowship.stages import QuestionDefinition, Stage, canonical_keys, get_stage_questions
from fellowship.validation import (
    AgeValidation,
    TeamAgeValidation,
    check_word_limit,
    is_answered,
    render_answer_text,
    validate_age,
    validate_team_ages,
)

logger = logging.getLogger("fellowship.questionnaire")

DATE_OF_BIRTH_PATHS: tuple[tuple[str, ...], ...] = (
    ("date_of_birth",),
    ("dateOfBirth",),
    ("yff_team_registrations", "date_of_birth"),
    ("yff_team_registrations", "dateOfBirth"),
    ("individuals", "date_of_birth"),
)
TEAM_MEMBER_PATHS: tuple[tuple[str, ...], ...] = (
    ("yff_team_registrations", "team_members"),
    ("team_members",),
)


class ParsedAnswer(BaseModel):
    canonical_key: str
    display_text: str
    answer_text: str
    is_answered: bool
    stage: Stage
    order_index: int
    word_count: int = 0
    word_limit_message: str | None = None
    evaluation: EvaluationScore | None = None


class DetectionInfo(BaseModel):
    raw_declared_value: str | None = None
    method: DetectionMethod = "none"
    declared_source: str | None = None
    answer_source: str | None = None
    warnings: list[str] = Field(default_factory=list)


class StrictQuestionnaireResult(BaseModel):
    application_id: str | None = None
    detected_stage: Stage | None = None
    questions: list[ParsedAnswer] = Field(default_factory=list)
    total_questions: int = 0
    answered_questions: int = 0
    stage_validation: StageValidation
    detection_info: DetectionInfo
    raw_answer_data: dict[str, Any] = Field(default_factory=dict)
    unmatched_evaluation_keys: list[str] = Field(default_factory=list)
    overall_score: float | None = None
    age_validation: AgeValidation | None = None
    team_age_validation: TeamAgeValidation | None = None

    @property
    def completion_ratio(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return self.answered_questions / self.total_questions


def _lookup(record: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    current: Any = record
    for segment in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)
    return current


def _application_id(record: Mapping[str, Any]) -> str | None:
    for key in ("application_id", "id"):
        value = record.get(key)
        if value is not None and str(value).strip():
            return str(value)
    return None


def _leader_date_of_birth(record: Mapping[str, Any]) -> Any:
    for path in DATE_OF_BIRTH_PATHS:
        value = _lookup(record, path)
        if value:
            return value
    return None


def _age_validation(record: Mapping[str, Any], today: date | None) -> AgeValidation | None:
    date_of_birth = _leader_date_of_birth(record)
    if date_of_birth is None:
        return None
    return validate_age(date_of_birth, today=today)


def _team_members(record: Mapping[str, Any]) -> tuple[list[Any], str | None]:
    for path in TEAM_MEMBER_PATHS:
        value = _lookup(record, path)
        label = ".".join(path)
        if isinstance(value, str) and value.strip():
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                return [], f"MalformedTeamMembers: {label} is not valid JSON ({exc.msg})"
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        if not isinstance(value, list):
            return [], f"MalformedTeamMembers: {label} is {type(value).__name__}, expected a list"
        return value, None
    return [], None


def _team_age_validation(
    record: Mapping[str, Any], members: list[Any], today: date | None
) -> TeamAgeValidation | None:
    if not members:
        return None
    return validate_team_ages(_leader_date_of_birth(record), members, today=today)


def _pick_raw_value(definition: QuestionDefinition, data: Mapping[str, Any]) -> Any:
    present = [
        alias
        for alias in aliases_for(definition.canonical_key, definition.stage)
        if alias in data and resolve_key(alias, definition.stage) == definition.canonical_key
    ]
    for alias in present:
        if is_answered(data[alias]):
            return data[alias]
    if present:
        return data[present[0]]
    return None


def _parse_question(
    definition: QuestionDefinition,
    data: Mapping[str, Any],
    scores: Mapping[str, EvaluationScore],
) -> ParsedAnswer:
    raw_value = _pick_raw_value(definition, data)
    answered = is_answered(raw_value)
    answer_text = render_answer_text(raw_value)
    word_check = check_word_limit(answer_text) if answered else None
    return ParsedAnswer(
        canonical_key=definition.canonical_key,
        display_text=definition.display_text,
        answer_text=answer_text,
        is_answered=answered,
        stage=definition.stage,
        order_index=definition.order_index,
        word_count=word_check.word_count if word_check else 0,
        word_limit_message=word_check.message if word_check else None,
        evaluation=evaluation_for(scores, definition.canonical_key),
    )


def assemble(record: Mapping[str, Any], *, today: date | None = None) -> StrictQuestionnaireResult:
    """Build the stage-pure question/answer list for one application record.

    Data problems never raise: they are reported through ``detection_info``,
    ``stage_validation`` and ``unmatched_evaluation_keys``.
    """
    if not isinstance(record, Mapping):
        raise TypeError(f"application record must be a mapping, got {type(record).__name__}")

    located: LocatedAnswers = locate_answers(record)
    detection = detect_stage(record, answers=located)
    data: Mapping[str, Any] = located.data or {}
    members, team_warning = _team_members(record)
    info = DetectionInfo(
        raw_declared_value=detection.raw_declared_value,
        method=detection.method,
        declared_source=detection.declared_source,
        answer_source=located.source_path,
        warnings=[*detection.warnings, *located.warnings, *([team_warning] if team_warning else [])],
    )
    common: dict[str, Any] = {
        "application_id": _application_id(record),
        "detection_info": info,
        "raw_answer_data": dict(data),
        "overall_score": extract_overall_score(record),
        "age_validation": _age_validation(record, today),
        "team_age_validation": _team_age_validation(record, members, today),
    }

    stage = detection.stage
    if stage is None:
        return StrictQuestionnaireResult(
            stage_validation=StageValidation(is_valid=False, violations=["StageUndetected: no stage could be detected"]),
            **common,
        )

    stage_validation = validate_no_stage_mixing(stage, data.keys())
    scores = extract_evaluation_scores(record)
    questions = [_parse_question(definition, data, scores) for definition in get_stage_questions(stage)]
    own_keys = canonical_keys(stage)
    answered = sum(1 for question in questions if question.is_answered)

    result = StrictQuestionnaireResult(
        detected_stage=stage,
        questions=questions,
        total_questions=len(questions),
        answered_questions=answered,
        stage_validation=stage_validation,
        unmatched_evaluation_keys=sorted(key for key in scores if key not in own_keys),
        **common,
    )
    logger.debug(
        "questionnaire_parsed",
        extra={
            "event": "questionnaire_parsed",
            "application_id": result.application_id,
            "stage": stage.value,
            "method": detection.method,
            "total_questions": result.total_questions,
            "answered_questions": answered,
            "violation_count": len(stage_validation.violations),
        },
    )
    return result


def assemble_many(
    records: Iterable[Mapping[str, Any]], *, today: date | None = None
) -> list[StrictQuestionnaireResult]:
    return [assemble(record, today=today) for record in records]


def summarize_results(results: list[StrictQuestionnaireResult]) -> dict[str, object]:
    stage_counts = {stage.value: 0 for stage in Stage}
    undetected = 0
    with_violations = 0
    for result in results:
        if result.detected_stage is None:
            undetected += 1
        else:
            stage_counts[result.detected_stage.value] += 1
            if not result.stage_validation.is_valid:
                with_violations += 1

    detected = [result for result in results if result.detected_stage is not None]
    average_completion = (
        round(sum(result.completion_ratio for result in detected) / len(detected), 4) if detected else 0.0
    )
    return {
        "total": len(results),
        "stage_counts": stage_counts,
        "undetected": undetected,
        "with_violations": with_violations,
        "average_completion": average_completion,
    }
