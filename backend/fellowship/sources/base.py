from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol


@dataclass(frozen=True)
class SourceProbe:
    source_id: str
    data: Mapping[str, Any] | None
    warning: str | None = None


@dataclass(frozen=True)
class LocatedAnswers:
    data: Mapping[str, Any] | None
    source_path: str | None
    warnings: list[str] = field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        if self.data is None:
            return []
        return [str(key) for key in self.data.keys()]


class AnswerSource(Protocol):
    source_id: str

    def find(self, record: Mapping[str, Any]) -> SourceProbe:
        ...
