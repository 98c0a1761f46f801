from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from fellowship.api.contracts import AgeValidationRequest, BatchParseRequest, WordCountRequest
from fellowship.config import settings
from fellowship.questionnaire import StrictQuestionnaireResult, assemble, assemble_many, summarize_results
from fellowship.stages import STAGE_QUESTIONS, stage_display_name
from fellowship.validation import check_word_limit, format_age, format_word_count, validate_age

logger = logging.getLogger("fellowship.api")

router = APIRouter()


@router.get("/questionnaire/stages")
def list_stages() -> dict[str, object]:
    return {
        "stages": [
            {
                "stage": stage.value,
                "display_name": stage_display_name(stage),
                "questions": [
                    {
                        "canonical_key": question.canonical_key,
                        "display_text": question.display_text,
                        "order_index": question.order_index,
                    }
                    for question in questions
                ],
            }
            for stage, questions in STAGE_QUESTIONS.items()
        ]
    }


@router.post("/questionnaire/parse", response_model=StrictQuestionnaireResult)
def parse_application(record: dict[str, Any]) -> StrictQuestionnaireResult:
    return assemble(record)


@router.post("/questionnaire/batch")
def parse_batch(payload: BatchParseRequest) -> dict[str, object]:
    if len(payload.records) > settings.max_batch_size:
        raise HTTPException(
            status_code=413,
            detail=f"Too many records in one batch (max {settings.max_batch_size}).",
        )

    results = assemble_many(payload.records)
    summary = summarize_results(results)
    logger.info("questionnaire_batch_parsed", extra={"event": "questionnaire_batch_parsed", **summary})
    return {
        "results": [result.model_dump(mode="json") for result in results],
        "summary": summary,
    }


@router.post("/validation/age")
def validate_age_endpoint(payload: AgeValidationRequest) -> dict[str, object]:
    validation = validate_age(payload.date_of_birth)
    return {**validation.model_dump(), "display": format_age(validation)}


@router.post("/validation/word-count")
def word_count_endpoint(payload: WordCountRequest) -> dict[str, object]:
    check = check_word_limit(payload.text, payload.limit)
    return {**check.model_dump(), "display": format_word_count(payload.text, payload.limit)}
