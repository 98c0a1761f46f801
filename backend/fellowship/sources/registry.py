from __future__ import annotations

import logging
from typing import Any, Mapping

from fellowship.sources.base import AnswerSource, LocatedAnswers
from fellowship.sources.field_sources import FieldAnswerSource, RecordAnswerSource

logger = logging.getLogger("fellowship.sources")


def default_sources() -> list[AnswerSource]:
    return [
        FieldAnswerSource("answers", "questionnaire_answers"),
        FieldAnswerSource("yff_team_registrations", "questionnaire_answers"),
        FieldAnswerSource("questionnaire_answers"),
        FieldAnswerSource("answers"),
        FieldAnswerSource("form_responses"),
        FieldAnswerSource("submission_data"),
        RecordAnswerSource(),
    ]


class AnswerSourceLocator:
    def __init__(self, sources: list[AnswerSource] | None = None) -> None:
        self._sources = sources or default_sources()

    @property
    def source_ids(self) -> list[str]:
        return [source.source_id for source in self._sources]

    def locate(self, record: Mapping[str, Any]) -> LocatedAnswers:
        warnings: list[str] = []
        for source in self._sources:
            probe = source.find(record)
            if probe.warning and probe.warning not in warnings:
                warnings.append(probe.warning)
            if probe.data:
                return LocatedAnswers(data=probe.data, source_path=probe.source_id, warnings=warnings)

        warnings.append("AnswerSourceNotFound: no known answer bag present; treating as 0 answers")
        logger.debug(
            "answer_source_not_found",
            extra={"event": "answer_source_not_found", "record_keys": sorted(str(key) for key in record.keys())},
        )
        return LocatedAnswers(data=None, source_path=None, warnings=warnings)


_DEFAULT_LOCATOR = AnswerSourceLocator()


def locate_answers(record: Mapping[str, Any]) -> LocatedAnswers:
    return _DEFAULT_LOCATOR.locate(record)
