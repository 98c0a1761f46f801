from fellowship.sources.base import AnswerSource, LocatedAnswers, SourceProbe
from fellowship.sources.field_sources import FieldAnswerSource, RecordAnswerSource
from fellowship.sources.registry import AnswerSourceLocator, default_sources, locate_answers

__all__ = [
    "AnswerSource",
    "AnswerSourceLocator",
    "FieldAnswerSource",
    "LocatedAnswers",
    "RecordAnswerSource",
    "SourceProbe",
    "default_sources",
    "locate_answers",
]
