from __future__ import annotations

import random

import pytest

import assess_core.scoring as scoring
from assess_core.errors import IncompleteAssessmentError, InvalidAnswerError
from assess_core.question_bank import MBTI_DIMENSIONS, load_bank, load_type_profiles
from assess_core.types import MBTIResult
from tests.conftest import build_mbti_bank


def test_all_first_letters_give_estj_with_full_confidence(mbti_bank):
    res = scoring.score(mbti_bank, {1: "E", 2: "S", 3: "T", 4: "J"})

    assert isinstance(res, MBTIResult)
    assert res.type == "ESTJ"
    assert [res.dimensions[d].score for d in MBTI_DIMENSIONS] == [100, 100, 100, 100]
    assert res.name == load_type_profiles()["types"]["ESTJ"]["name"]
    assert res.dimensions["EI"].description.startswith("Extraversion")


def test_opposite_letters_give_infp(mbti_bank):
    res = scoring.score_mbti(mbti_bank, {1: "I", 2: "N", 3: "F", 4: "P"})
    assert res.type == "INFP"
    assert all(d.score == 100 for d in res.dimensions.values())


def test_exact_ties_resolve_to_first_letter_regardless_of_order():
    bank = build_mbti_bank(per_dimension=2)
    forward = {1: "E", 2: "I", 3: "S", 4: "N", 5: "T", 6: "F", 7: "J", 8: "P"}
    backward = {1: "I", 2: "E", 3: "N", 4: "S", 5: "F", 6: "T", 7: "P", 8: "J"}

    a = scoring.score(bank, forward)
    b = scoring.score(bank, dict(reversed(list(backward.items()))))

    assert a.type == b.type == "ESTJ"
    assert all(d.score == 50 for d in a.dimensions.values())


def test_confidence_is_rounded_majority_share():
    bank = build_mbti_bank(per_dimension=3)
    answers = {q.id: q.options[0].tag for q in bank.questions}
    # EI goes 1 E vs 2 I
    answers[2] = "I"
    answers[3] = "I"

    res = scoring.score(bank, answers)
    assert res.type.startswith("I")
    assert res.dimensions["EI"].score == 67
    assert res.dimensions["SN"].score == 100


def test_missing_answers_raise_incomplete(mbti_bank):
    with pytest.raises(IncompleteAssessmentError) as err:
        scoring.score(mbti_bank, {1: "E", 2: "S", 4: "J"})
    assert err.value.missing_ids == [3]
    assert err.value.code == "INCOMPLETE_ASSESSMENT"


def test_completeness_is_checked_before_tag_validity(mbti_bank):
    with pytest.raises(IncompleteAssessmentError):
        scoring.score(mbti_bank, {1: "X", 2: "S"})


def test_tag_outside_question_options_is_invalid(mbti_bank):
    with pytest.raises(InvalidAnswerError) as err:
        scoring.score(mbti_bank, {1: "E", 2: "S", 3: "J", 4: "J"})
    assert err.value.question_id == 3
    assert err.value.valid == ("T", "F")
    assert err.value.to_dict()["error"]["code"] == "INVALID_ANSWER"


def test_answer_for_unknown_question_is_invalid(mbti_bank):
    with pytest.raises(InvalidAnswerError):
        scoring.score(mbti_bank, {1: "E", 2: "S", 3: "T", 4: "J", 99: "E"})


def test_scoring_is_idempotent(mbti_bank):
    answers = {1: "I", 2: "S", 3: "F", 4: "J"}
    first = scoring.score(mbti_bank, answers)
    second = scoring.score(mbti_bank, answers)
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_unknown_type_code_uses_default_profile(monkeypatch, mbti_bank):
    profiles = dict(load_type_profiles())
    types = dict(profiles["types"])
    types.pop("ESTJ")
    profiles["types"] = types
    monkeypatch.setattr(scoring, "load_type_profiles", lambda: profiles)

    res = scoring.score(mbti_bank, {1: "E", 2: "S", 3: "T", 4: "J"})
    assert res.type == "ESTJ"
    assert res.name == types[profiles["default_type"]]["name"]


def test_dimension_without_questions_scores_zero():
    bank = build_mbti_bank(dimensions=["EI"])
    res = scoring.score(bank, {1: "I"})
    assert res.type == "ISTJ"
    assert res.dimensions["EI"].score == 100
    assert res.dimensions["SN"].score == 0


def test_tally_matches_question_counts():
    bank = load_bank("mbti")
    rng = random.Random(7)
    answers = {q.id: rng.choice(q.tags()) for q in bank.questions}

    tally = scoring.tally_dimensions(bank, answers)
    for dim in MBTI_DIMENSIONS:
        n = sum(1 for q in bank.questions if q.dimension == dim)
        assert tally[dim][dim[0]] + tally[dim][dim[1]] == n


def test_random_complete_answer_sets_give_valid_codes():
    bank = load_bank("mbti")
    rng = random.Random(42)
    for _ in range(50):
        answers = {q.id: rng.choice(q.tags()) for q in bank.questions}
        res = scoring.score(bank, answers)
        assert len(res.type) == 4
        for letter, dim in zip(res.type, MBTI_DIMENSIONS):
            assert letter in dim
            assert 50 <= res.dimensions[dim].score <= 100
