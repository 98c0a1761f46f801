from __future__ import annotations

from datetime import date, datetime
import json
import re
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, Field

from fellowship.config import settings


NOT_PROVIDED = "Not provided"
PLACEHOLDER_VALUES = {"", "null", "undefined", "N/A"}
_WORD_SPLIT = re.compile(r"\s+")


class AgeValidation(BaseModel):
    is_valid: bool
    age: int | None = None
    error: str | None = None


class TeamAgeValidation(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class WordLimitCheck(BaseModel):
    word_count: int
    limit: int
    is_over_limit: bool
    over_by: int = 0
    message: str | None = None


def _unwrap(value: Any) -> Any:
    if isinstance(value, Mapping) and "value" in value:
        return value["value"]
    return value


def is_answered(raw_value: Any) -> bool:
    value = _unwrap(raw_value)
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() not in PLACEHOLDER_VALUES
    if isinstance(value, bool):
        return value
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) > 0
    return True


def render_answer_text(raw_value: Any) -> str:
    if not is_answered(raw_value):
        return NOT_PROVIDED
    value = _unwrap(raw_value)
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        items = [str(item) for item in value if item is not None]
        return ", ".join(items) if items else NOT_PROVIDED
    if isinstance(value, Mapping):
        return json.dumps(value, indent=2, default=str)
    return str(value)


def count_words(text: Any) -> int:
    if not isinstance(text, str):
        return 0
    stripped = text.strip()
    if not stripped:
        return 0
    return len(_WORD_SPLIT.split(stripped))


def check_word_limit(text: Any, limit: int | None = None) -> WordLimitCheck:
    cap = settings.word_limit if limit is None else limit
    word_count = count_words(text)
    over_by = max(0, word_count - cap)
    return WordLimitCheck(
        word_count=word_count,
        limit=cap,
        is_over_limit=over_by > 0,
        over_by=over_by,
        message=f"Over limit by {over_by} words" if over_by else None,
    )


def format_word_count(text: Any, limit: int | None = None) -> str:
    check = check_word_limit(text, limit)
    rendered = f"{check.word_count} / {check.limit} words"
    if check.is_over_limit:
        rendered += f" ({check.message})"
    return rendered


def _parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def calculate_age(date_of_birth: date, *, today: date | None = None) -> int:
    current = today or date.today()
    age = current.year - date_of_birth.year
    if (current.month, current.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def validate_age(date_of_birth: Any, *, today: date | None = None) -> AgeValidation:
    if date_of_birth is None or (isinstance(date_of_birth, str) and not date_of_birth.strip()):
        return AgeValidation(is_valid=False, error="Date of birth is required")

    parsed = _parse_date(date_of_birth)
    if parsed is None:
        return AgeValidation(is_valid=False, error=f"Date of birth '{date_of_birth}' is not a valid date")

    age = calculate_age(parsed, today=today)
    if age < settings.min_applicant_age:
        return AgeValidation(
            is_valid=False,
            age=age,
            error=f"You must be at least {settings.min_applicant_age} years old to register",
        )
    if age > settings.max_applicant_age:
        return AgeValidation(
            is_valid=False,
            age=age,
            error=f"You must be {settings.max_applicant_age} years old or younger to register",
        )
    return AgeValidation(is_valid=True, age=age)


def format_age(validation: AgeValidation) -> str:
    if validation.is_valid:
        return f"{validation.age} years (Valid)"
    return validation.error or "Age could not be determined"


def validate_team_ages(
    leader_date_of_birth: Any,
    members: Iterable[Any],
    *,
    today: date | None = None,
) -> TeamAgeValidation:
    """Check the team leader and every member who gave a date of birth.

    Members are numbered by their position in the submitted list, so a member
    skipped for having no date of birth still takes up a number.
    """
    errors: list[str] = []
    leader = validate_age(leader_date_of_birth, today=today)
    if not leader.is_valid:
        errors.append(f"Team leader: {leader.error}")

    for number, member in enumerate(members, start=1):
        if not isinstance(member, Mapping):
            continue
        member_dob = member.get("dateOfBirth") or member.get("date_of_birth")
        if not member_dob:
            continue
        result = validate_age(member_dob, today=today)
        if not result.is_valid:
            errors.append(f"Team member {number}: {result.error}")
    return TeamAgeValidation(is_valid=not errors, errors=errors)
