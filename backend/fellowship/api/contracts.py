from typing import Any

from pydantic import BaseModel, Field


class BatchParseRequest(BaseModel):
    records: list[dict[str, Any]] = Field(default_factory=list)


class AgeValidationRequest(BaseModel):
    date_of_birth: str | None = None


class WordCountRequest(BaseModel):
    text: str = ""
    limit: int | None = Field(default=None, ge=1, le=5000)
