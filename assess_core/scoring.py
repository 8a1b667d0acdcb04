from __future__ import annotations
import logging
from typing import Any, Dict, Mapping, Tuple, Union

from .errors import IncompleteAssessmentError, InvalidAnswerError
from .question_bank import MBTI_DIMENSIONS, TKI_MODES, load_type_profiles, load_mode_profiles
from .types import DimensionResult, MBTIResult, QuestionBank, TKIResult

log = logging.getLogger(__name__)

ScoreResult = Union[MBTIResult, TKIResult]
Answers = Mapping[int, str]


def check_answers(bank: QuestionBank, answers: Answers) -> None:
    """
    Completeness first, then tag validity.
    Answers for ids outside the bank count as invalid.
    """
    given = set(answers.keys())
    missing = [qid for qid in bank.ids() if qid not in given]
    if missing:
        raise IncompleteAssessmentError(missing)
    for qid, tag in answers.items():
        valid = bank.valid_tags(qid)
        if not valid:
            raise InvalidAnswerError(qid, tag)
        if tag not in valid:
            raise InvalidAnswerError(qid, tag, valid)


def tally_dimensions(bank: QuestionBank, answers: Answers) -> Dict[str, Dict[str, int]]:
    tally = {dim: {dim[0]: 0, dim[1]: 0} for dim in MBTI_DIMENSIONS}
    for q in bank.questions:
        counts = tally.get(q.dimension)
        tag = answers.get(q.id)
        if counts is None or tag not in counts:
            continue
        counts[tag] += 1
    return tally


def tally_modes(bank: QuestionBank, answers: Answers) -> Dict[str, int]:
    tally = {mode: 0 for mode in TKI_MODES}
    for q in bank.questions:
        tag = answers.get(q.id)
        if tag in tally:
            tally[tag] += 1
    return tally


def _dimension_winner(dim: str, counts: Mapping[str, int]) -> Tuple[str, int]:
    first, second = dim[0], dim[1]
    a, b = counts.get(first, 0), counts.get(second, 0)
    letter = first if a >= b else second
    total = a + b
    if total == 0:
        log.warning("dimension %s has no answered questions", dim)
        return letter, 0
    return letter, round(max(a, b) / total * 100)


def score_mbti(bank: QuestionBank, answers: Answers) -> MBTIResult:
    check_answers(bank, answers)
    tally = tally_dimensions(bank, answers)
    profiles = load_type_profiles()
    descriptions: Dict[str, Dict[str, str]] = profiles.get("dimensions", {})

    dims: Dict[str, DimensionResult] = {}
    code = ""
    for dim in MBTI_DIMENSIONS:
        letter, pct = _dimension_winner(dim, tally[dim])
        code += letter
        dims[dim] = DimensionResult(
            letter=letter,
            description=descriptions.get(dim, {}).get(letter, ""),
            score=pct,
        )

    types: Dict[str, Any] = profiles.get("types", {})
    data = types.get(code)
    if data is None:
        log.warning("no profile for type %s; using default %s", code, profiles.get("default_type"))
        data = types.get(profiles.get("default_type", ""), {})

    result = MBTIResult(
        type=code,
        dimensions=dims,
        name=str(data.get("name", "")),
        description=str(data.get("description", "")),
        strengths=tuple(data.get("strengths", ())),
        development_areas=tuple(profiles.get("development_areas", ())),
        career_suggestions=tuple(data.get("career_suggestions", ())),
        bank_version=bank.version,
    )
    log.info("scored mbti submission type=%s", code)
    return result


def score_tki(bank: QuestionBank, answers: Answers) -> TKIResult:
    check_answers(bank, answers)
    for qid, tag in answers.items():
        if tag not in TKI_MODES:
            raise InvalidAnswerError(qid, tag, TKI_MODES)
    counts = tally_modes(bank, answers)
    total = len(bank.questions)

    # canonical order wins ties
    primary = TKI_MODES[0]
    for mode in TKI_MODES[1:]:
        if counts[mode] > counts[primary]:
            primary = mode

    scores = {mode: (round(counts[mode] / total * 100) if total else 0) for mode in TKI_MODES}

    profiles = load_mode_profiles()
    modes: Dict[str, Any] = profiles.get("modes", {})
    data = modes.get(primary) or modes.get(profiles.get("fallback_mode", ""), {})

    result = TKIResult(
        mode=primary,
        style=str(data.get("name", primary.capitalize())),
        description=str(data.get("description", "")),
        scores=scores,
        counts=dict(counts),
        insights=tuple(data.get("insights", ())),
        communication_tips=tuple(data.get("communication_tips", ())),
        growth_areas=tuple(data.get("growth_areas", ())),
        bank_version=bank.version,
    )
    log.info("scored tki submission mode=%s", primary)
    return result


def score(bank: QuestionBank, answers: Answers) -> ScoreResult:
    """
    Score a complete answer map against its bank.
    mbti -> MBTIResult, tki -> TKIResult.
    """
    if bank.kind == "mbti":
        return score_mbti(bank, answers)
    if bank.kind == "tki":
        return score_tki(bank, answers)
    raise ValueError(f"unknown assessment kind: {bank.kind}")
