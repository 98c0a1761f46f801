from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Stage(str, Enum):
    IDEA = "idea_stage"
    EARLY_REVENUE = "early_revenue"


@dataclass(frozen=True)
class QuestionDefinition:
    canonical_key: str
    display_text: str
    stage: Stage
    order_index: int


STAGE_DISPLAY_NAMES: dict[Stage, str] = {
    Stage.IDEA: "Idea Stage",
    Stage.EARLY_REVENUE: "Early Revenue",
}

# Both stages ask the same ten questions; only the stored keys differ.
_QUESTION_TEXTS = (
    "Tell us about your idea",
    "What problem does your idea solve?",
    "Whose problem does your idea solve for?",
    "How does your idea solve this problem?",
    "How do you plan to make money from this idea?",
    "How do you plan to acquire first paying customers?",
    "List 3 potential competitors for your idea",
    "What is your approach to product development?",
    "Who is on your team, and what are their roles?",
    "When do you plan to proceed with the idea?",
)

_STAGE_KEYS: dict[Stage, tuple[str, ...]] = {
    Stage.IDEA: (
        "ideaDescription",
        "problemSolved",
        "targetAudience",
        "solutionApproach",
        "monetizationStrategy",
        "customerAcquisition",
        "competitors",
        "developmentApproach",
        "teamInfo",
        "timeline",
    ),
    Stage.EARLY_REVENUE: (
        "tell_us_about_idea",
        "early_revenue_problem",
        "early_revenue_target",
        "early_revenue_how_solve",
        "early_revenue_monetization",
        "early_revenue_customers",
        "early_revenue_competitors",
        "early_revenue_development",
        "early_revenue_team",
        "early_revenue_timeline",
    ),
}


def _build_registry() -> dict[Stage, tuple[QuestionDefinition, ...]]:
    registry: dict[Stage, tuple[QuestionDefinition, ...]] = {}
    for stage, keys in _STAGE_KEYS.items():
        if len(keys) != len(_QUESTION_TEXTS):
            raise RuntimeError(f"Question registry for {stage.value} is out of step with the question texts.")
        registry[stage] = tuple(
            QuestionDefinition(canonical_key=key, display_text=text, stage=stage, order_index=index)
            for index, (key, text) in enumerate(zip(keys, _QUESTION_TEXTS), start=1)
        )

    idea_keys = set(_STAGE_KEYS[Stage.IDEA])
    revenue_keys = set(_STAGE_KEYS[Stage.EARLY_REVENUE])
    shared = idea_keys & revenue_keys
    if shared:
        raise RuntimeError(f"Canonical keys must be stage-exclusive, found shared keys: {sorted(shared)}")
    return registry


STAGE_QUESTIONS = _build_registry()


def get_stage_questions(stage: Stage) -> tuple[QuestionDefinition, ...]:
    return STAGE_QUESTIONS[stage]


def canonical_keys(stage: Stage) -> frozenset[str]:
    return frozenset(question.canonical_key for question in STAGE_QUESTIONS[stage])


def get_question(canonical_key: str) -> QuestionDefinition | None:
    for questions in STAGE_QUESTIONS.values():
        for question in questions:
            if question.canonical_key == canonical_key:
                return question
    return None


def other_stage(stage: Stage) -> Stage:
    return Stage.EARLY_REVENUE if stage is Stage.IDEA else Stage.IDEA


def stage_display_name(stage: Stage) -> str:
    return STAGE_DISPLAY_NAMES[stage]
