from __future__ import annotations

import copy
import json

from fellowship.sources import AnswerSourceLocator, FieldAnswerSource, locate_answers


def test_nested_answers_take_priority_over_registration_answers() -> None:
    record = {
        "answers": {"questionnaire_answers": {"problem": "from answers"}},
        "yff_team_registrations": {"questionnaire_answers": {"problem": "from registration"}},
    }

    located = locate_answers(record)

    assert located.source_path == "answers.questionnaire_answers"
    assert located.data == {"problem": "from answers"}
    assert located.warnings == []


def test_registration_answers_stored_as_json_string_are_decoded() -> None:
    record = {
        "yff_team_registrations": {
            "questionnaire_answers": json.dumps({"early_revenue_team": "Two founders"}),
        }
    }

    located = locate_answers(record)

    assert located.source_path == "yff_team_registrations.questionnaire_answers (json)"
    assert located.data == {"early_revenue_team": "Two founders"}


def test_answers_json_string_with_nested_bag_is_decoded() -> None:
    record = {"answers": json.dumps({"questionnaire_answers": {"timeline": "Next spring"}})}

    located = locate_answers(record)

    assert located.source_path == "answers.questionnaire_answers (json)"
    assert located.data == {"timeline": "Next spring"}


def test_malformed_json_is_treated_as_not_found_with_one_warning() -> None:
    record = {"answers": "{not json", "questionnaire_answers": {"problem": "fallback"}}

    located = locate_answers(record)

    assert located.source_path == "questionnaire_answers"
    assert located.data == {"problem": "fallback"}
    malformed = [warning for warning in located.warnings if warning.startswith("MalformedAnswerSource")]
    assert len(malformed) == 1
    assert "answers" in malformed[0]


def test_json_that_is_not_an_object_is_reported() -> None:
    located = locate_answers({"questionnaire_answers": "[1, 2, 3]"})

    assert located.data is None
    assert any("decoded to list" in warning for warning in located.warnings)


def test_empty_containers_are_skipped() -> None:
    record = {"answers": {}, "questionnaire_answers": {"team": "Solo"}}

    located = locate_answers(record)

    assert located.source_path == "questionnaire_answers"


def test_top_level_record_is_last_resort_and_needs_known_keys() -> None:
    promoted = {"id": "app-1", "problemSolved": "Food waste"}
    located = locate_answers(promoted)
    assert located.source_path == "record"
    assert located.data is promoted

    unrelated = {"id": "app-2", "email": "someone@example.org"}
    located = locate_answers(unrelated)
    assert located.data is None
    assert located.source_path is None
    assert located.keys == []
    assert any(warning.startswith("AnswerSourceNotFound") for warning in located.warnings)


def test_locator_never_mutates_the_record() -> None:
    record = {
        "answers": json.dumps({"questionnaire_answers": {"problem": "x"}}),
        "yff_team_registrations": {"questionnaire_answers": {"team": "y"}},
    }
    snapshot = copy.deepcopy(record)

    locate_answers(record)

    assert record == snapshot


def test_custom_source_list_is_respected() -> None:
    locator = AnswerSourceLocator([FieldAnswerSource("legacy", "bag")])

    assert locator.source_ids == ["legacy.bag"]
    located = locator.locate({"legacy": {"bag": {"idea": "Compost"}}, "answers": {"idea": "ignored"}})
    assert located.source_path == "legacy.bag"
    assert located.data == {"idea": "Compost"}
