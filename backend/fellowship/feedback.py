"""Request/response contract of the AI-feedback collaborator.

The feedback service itself lives elsewhere; this module only validates what
it sends back and converts successful feedback into an ``EvaluationScore`` so
it can be stored under a canonical question key.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
import re
from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from fellowship.evaluation import EvaluationScore, coerce_score


MAX_FEEDBACK_ITEMS = 5

_SCORE_PATTERN = re.compile(r"SCORE:\s*(\d+(?:\.\d+)?)", flags=re.IGNORECASE)
_STRENGTHS_PATTERN = re.compile(r"STRENGTHS:(.*?)(?=AREAS FOR IMPROVEMENT:|$)", flags=re.IGNORECASE | re.DOTALL)
_IMPROVEMENTS_PATTERN = re.compile(r"AREAS FOR IMPROVEMENT:(.*?)$", flags=re.IGNORECASE | re.DOTALL)
_BULLET_SPLIT = re.compile(r"(?m)^\s*[-•]\s*")


class FeedbackErrorCode(str, Enum):
    NOT_ENABLED = "not_enabled"
    ANSWER_TOO_SHORT = "answer_too_short"
    RATE_LIMITED = "rate_limited"
    SERVICE_BUSY = "service_busy"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


RETRYABLE_CODES = frozenset(
    {FeedbackErrorCode.RATE_LIMITED, FeedbackErrorCode.SERVICE_BUSY, FeedbackErrorCode.TIMEOUT}
)


class FeedbackRequest(BaseModel):
    question_id: str = Field(..., min_length=1)
    user_answer: str = Field(..., min_length=1)


class FeedbackSuccess(BaseModel):
    score: float | None = None
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    feedback: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("score", mode="before")
    @classmethod
    def _coerce_score(cls, value: Any) -> float | None:
        return coerce_score(value)

    @field_validator("strengths", "improvements")
    @classmethod
    def _cap_items(cls, value: list[str]) -> list[str]:
        return value[:MAX_FEEDBACK_ITEMS]


class FeedbackFailure(BaseModel):
    error: str
    code: FeedbackErrorCode = FeedbackErrorCode.UNAVAILABLE
    message: str = "Feedback temporarily unavailable. Your answer has been saved."

    @field_validator("code", mode="before")
    @classmethod
    def _known_code(cls, value: Any) -> FeedbackErrorCode:
        try:
            return FeedbackErrorCode(str(value).strip().lower())
        except ValueError:
            return FeedbackErrorCode.UNAVAILABLE

    @property
    def can_retry(self) -> bool:
        return is_retryable(self.code)


def is_retryable(code: FeedbackErrorCode | str) -> bool:
    try:
        return FeedbackErrorCode(code) in RETRYABLE_CODES
    except ValueError:
        return False


def _bullets(section: str) -> list[str]:
    items = [item.strip() for item in _BULLET_SPLIT.split(section)]
    return [item for item in items if item][:MAX_FEEDBACK_ITEMS]


def parse_feedback_text(text: str) -> FeedbackSuccess:
    score_match = _SCORE_PATTERN.search(text)
    strengths_match = _STRENGTHS_PATTERN.search(text)
    improvements_match = _IMPROVEMENTS_PATTERN.search(text)
    return FeedbackSuccess(
        score=score_match.group(1) if score_match else None,
        strengths=_bullets(strengths_match.group(1)) if strengths_match else [],
        improvements=_bullets(improvements_match.group(1)) if improvements_match else [],
        feedback=text,
    )


def parse_feedback_response(payload: Mapping[str, Any]) -> FeedbackSuccess | FeedbackFailure:
    if payload.get("error"):
        return FeedbackFailure.model_validate(
            {
                "error": str(payload["error"]),
                "code": payload.get("code", FeedbackErrorCode.UNAVAILABLE.value),
                "message": str(payload.get("message") or payload["error"]),
            }
        )
    data = dict(payload)
    if "feedback" not in data and "rawFeedback" in data:
        data["feedback"] = data["rawFeedback"]
    try:
        return FeedbackSuccess.model_validate(data)
    except ValidationError as err:
        return FeedbackFailure(
            error="; ".join(issue["msg"] for issue in err.errors()),
            code=FeedbackErrorCode.UNAVAILABLE,
        )


def to_evaluation_score(success: FeedbackSuccess) -> EvaluationScore:
    return EvaluationScore(
        score=success.score,
        strengths=list(success.strengths),
        improvements=list(success.improvements),
        raw_feedback=success.feedback or None,
    )
