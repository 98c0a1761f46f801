from __future__ import annotations

import copy
from datetime import date
import json

import pytest

from fellowship.questionnaire import assemble, assemble_many, summarize_results
from fellowship.stages import Stage

TODAY = date(2026, 10, 19)


def _declared_early_revenue() -> dict[str, object]:
    return {
        "id": "app-a",
        "productStage": "early_revenue",
        "answers": {"questionnaire_answers": {"early_revenue_problem": "X solves Y"}},
    }


def _heuristic_early_revenue() -> dict[str, object]:
    return {"id": "app-b", "questionnaire_answers": {"early_revenue_monetization": "Subscriptions"}}


def _mixed_idea() -> dict[str, object]:
    return {
        "id": "app-c",
        "productStage": "Idea Stage",
        "questionnaire_answers": {"problemSolved": "Food waste", "early_revenue_monetization": "Ads"},
    }


def _undetected() -> dict[str, object]:
    return {"id": "app-d", "questionnaire_answers": {"problem": "Shared key only"}}


def test_declared_stage_produces_full_ordered_question_set() -> None:
    result = assemble(_declared_early_revenue())

    assert result.application_id == "app-a"
    assert result.detected_stage is Stage.EARLY_REVENUE
    assert result.total_questions == 10
    assert result.answered_questions == 1
    assert [question.order_index for question in result.questions] == list(range(1, 11))
    assert all(question.stage is Stage.EARLY_REVENUE for question in result.questions)

    problem = result.questions[1]
    assert problem.canonical_key == "early_revenue_problem"
    assert problem.display_text == "What problem does your idea solve?"
    assert problem.answer_text == "X solves Y"
    assert problem.is_answered is True
    assert problem.word_count == 3
    assert result.questions[0].answer_text == "Not provided"

    assert result.stage_validation.is_valid is True
    assert result.detection_info.method == "declared"
    assert result.detection_info.answer_source == "answers.questionnaire_answers"
    assert result.raw_answer_data == {"early_revenue_problem": "X solves Y"}


def test_stage_is_inferred_from_exclusive_answer_keys() -> None:
    result = assemble(_heuristic_early_revenue())

    assert result.detected_stage is Stage.EARLY_REVENUE
    assert result.detection_info.method == "heuristic"
    assert result.answered_questions == 1
    monetization = next(q for q in result.questions if q.canonical_key == "early_revenue_monetization")
    assert monetization.answer_text == "Subscriptions"
    assert any(
        warning.startswith("HeuristicStage: stage inferred as Early Revenue") for warning in result.detection_info.warnings
    )


def test_foreign_stage_answers_are_excluded_and_reported() -> None:
    result = assemble(_mixed_idea())

    assert result.detected_stage is Stage.IDEA
    assert result.answered_questions == 1
    assert len(result.stage_validation.violations) == 1
    assert "early_revenue_monetization" in result.stage_validation.violations[0]
    assert all(question.answer_text != "Ads" for question in result.questions)
    monetization = next(q for q in result.questions if q.canonical_key == "monetizationStrategy")
    assert monetization.is_answered is False
    assert monetization.answer_text == "Not provided"
    assert {question.stage for question in result.questions} == {Stage.IDEA}


def test_undetected_stage_returns_empty_questions_with_diagnostics() -> None:
    result = assemble(_undetected())

    assert result.detected_stage is None
    assert result.questions == []
    assert result.total_questions == 0
    assert result.answered_questions == 0
    assert result.stage_validation.is_valid is False
    assert result.detection_info.method == "none"
    assert result.raw_answer_data == {"problem": "Shared key only"}


def test_record_without_answers_is_not_an_error() -> None:
    result = assemble({"id": "app-e", "productStage": "Idea"})

    assert result.detected_stage is Stage.IDEA
    assert result.total_questions == 10
    assert result.answered_questions == 0
    assert result.raw_answer_data == {}
    assert any(warning.startswith("AnswerSourceNotFound") for warning in result.detection_info.warnings)


def test_output_is_deterministic() -> None:
    first = assemble(_mixed_idea(), today=TODAY)
    second = assemble(_mixed_idea(), today=TODAY)

    assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.parametrize("raw_key", ["problemSolved", "problem_solved", "problemStatement", "problem"])
def test_alias_choice_does_not_change_output(raw_key: str) -> None:
    baseline = assemble({"productStage": "Idea", "questionnaire_answers": {"problemSolved": "Plastic waste"}})
    variant = assemble({"productStage": "Idea", "questionnaire_answers": {raw_key: "Plastic waste"}})

    assert variant.questions == baseline.questions


def test_first_answered_alias_wins() -> None:
    filled = assemble(
        {"productStage": "Idea", "questionnaire_answers": {"problemSolved": "Canonical", "problem": "Legacy"}}
    )
    assert filled.questions[1].answer_text == "Canonical"

    blank = assemble({"productStage": "Idea", "questionnaire_answers": {"problemSolved": "", "problem": "Legacy"}})
    assert blank.questions[1].answer_text == "Legacy"


def test_json_answer_bag_with_value_wrappers() -> None:
    record = {
        "stage": "Early Revenue",
        "yff_team_registrations": {
            "questionnaire_answers": json.dumps(
                {"earlyRevenueTeam": {"value": "Two founders"}, "howMakeMoney": {"value": ""}, "timeline": 2027}
            )
        },
    }

    result = assemble(record)

    assert result.detection_info.answer_source == "yff_team_registrations.questionnaire_answers (json)"
    team = next(q for q in result.questions if q.canonical_key == "early_revenue_team")
    money = next(q for q in result.questions if q.canonical_key == "early_revenue_monetization")
    assert team.answer_text == "Two founders"
    assert money.is_answered is False
    assert result.answered_questions == 1
    assert len(result.stage_validation.violations) == 1


def test_numeric_answers_count_as_answered() -> None:
    result = assemble({"productStage": "Idea", "questionnaire_answers": {"timeline": 2027}})

    timeline = result.questions[-1]
    assert timeline.is_answered is True
    assert timeline.answer_text == "2027"


def test_evaluations_attach_by_exact_canonical_key() -> None:
    record = {
        "productStage": "Idea",
        "questionnaire_answers": {"problemSolved": "Waste", "team": "Solo"},
        "evaluation_data": {
            "scores": {
                "problemSolved": {"score": 8},
                "team": {"score": 3},
                "early_revenue_team": {"score": 5},
            },
            "overall_score": "7/10",
        },
    }

    result = assemble(record)

    by_key = {question.canonical_key: question for question in result.questions}
    assert by_key["problemSolved"].evaluation is not None
    assert by_key["problemSolved"].evaluation.score == 8.0
    assert by_key["teamInfo"].evaluation is None
    assert result.unmatched_evaluation_keys == ["early_revenue_team", "team"]
    assert result.overall_score == 7.0


def test_long_answers_are_flagged_not_truncated() -> None:
    long_answer = " ".join(["word"] * 301)

    result = assemble({"productStage": "Idea", "questionnaire_answers": {"ideaDescription": long_answer}})

    idea = result.questions[0]
    assert idea.answer_text == long_answer
    assert idea.word_count == 301
    assert idea.word_limit_message == "Over limit by 1 words"


def test_age_is_validated_when_date_of_birth_is_present() -> None:
    record = {"productStage": "Idea", "yff_team_registrations": {"date_of_birth": "2008-10-19"}}

    result = assemble(record, today=TODAY)

    assert result.age_validation is not None
    assert result.age_validation.is_valid is True
    assert result.age_validation.age == 18
    assert assemble({"productStage": "Idea"}).age_validation is None


def test_record_must_be_a_mapping() -> None:
    with pytest.raises(TypeError):
        assemble(["not", "a", "record"])  # type: ignore[arg-type]


def test_input_record_is_not_mutated() -> None:
    record = {
        "productStage": "Idea Stage",
        "answers": json.dumps({"questionnaire_answers": {"problem": "x", "early_revenue_team": "y"}}),
        "evaluation_data": json.dumps({"scores": {"problemSolved": {"score": 1}}}),
    }
    snapshot = copy.deepcopy(record)

    assemble(record)

    assert record == snapshot


def test_summarize_results() -> None:
    results = assemble_many(
        [_declared_early_revenue(), _heuristic_early_revenue(), _mixed_idea(), _undetected()]
    )

    summary = summarize_results(results)

    assert summary["total"] == 4
    assert summary["stage_counts"] == {"idea_stage": 1, "early_revenue": 2}
    assert summary["undetected"] == 1
    assert summary["with_violations"] == 1
    assert summary["average_completion"] == pytest.approx(0.1)


def test_registration_product_stage_keeps_the_applicants_answers() -> None:
    record = {
        "application_stage": "Idea",
        "yff_team_registrations": {
            "productStage": "Early Revenue",
            "questionnaire_answers": {"early_revenue_problem": "X"},
        },
    }

    result = assemble(record)

    assert result.detected_stage is Stage.EARLY_REVENUE
    assert result.detection_info.declared_source == "yff_team_registrations.productStage"
    assert result.answered_questions == 1
    assert result.stage_validation.is_valid is True


def test_team_member_ages_are_checked_alongside_the_leader() -> None:
    record = {
        "productStage": "Idea",
        "yff_team_registrations": {
            "date_of_birth": "2004-05-01",
            "team_members": json.dumps(
                [{"dateOfBirth": "2005-02-02"}, {"dateOfBirth": "1990-07-07"}]
            ),
        },
    }

    result = assemble(record, today=TODAY)

    assert result.age_validation is not None
    assert result.age_validation.is_valid is True
    assert result.team_age_validation is not None
    assert result.team_age_validation.is_valid is False
    assert result.team_age_validation.errors == [
        "Team member 2: You must be 25 years old or younger to register"
    ]


def test_solo_applicant_has_no_team_age_check() -> None:
    result = assemble({"productStage": "Idea", "date_of_birth": "2004-05-01"}, today=TODAY)

    assert result.team_age_validation is None


def test_malformed_team_members_are_reported() -> None:
    result = assemble({"productStage": "Idea", "yff_team_registrations": {"team_members": "[oops"}})

    assert result.team_age_validation is None
    assert any(warning.startswith("MalformedTeamMembers") for warning in result.detection_info.warnings)
