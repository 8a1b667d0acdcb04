from __future__ import annotations

import importlib
import os
import sys

import pytest

from assess_core.question_bank import MBTI_DIMENSIONS, TKI_MODES, catalog_from_rows, load_catalog
from assess_core.types import CourseSignal, Option, Question, QuestionBank


def build_mbti_bank(*, per_dimension: int = 1, dimensions: list[str] | None = None) -> QuestionBank:
    """Deterministic MBTI bank; ids run 1..N dimension by dimension."""

    questions: list[Question] = []
    qid = 1
    for dim in dimensions or list(MBTI_DIMENSIONS):
        for idx in range(per_dimension):
            questions.append(
                Question(
                    id=qid,
                    dimension=dim,
                    prompt=f"{dim} prompt #{idx}",
                    options=(Option(text=f"{dim[0]} side", tag=dim[0]), Option(text=f"{dim[1]} side", tag=dim[1])),
                )
            )
            qid += 1
    return QuestionBank(kind="mbti", version="test", questions=tuple(questions))


def build_tki_bank(situations: int = 5) -> QuestionBank:
    questions = tuple(
        Question(
            id=i,
            dimension="conflict",
            prompt=f"Situation {i}",
            options=tuple(Option(text=f"{mode} response", tag=mode) for mode in TKI_MODES),
        )
        for i in range(1, situations + 1)
    )
    return QuestionBank(kind="tki", version="test", questions=questions)


def build_catalog(n: int = 10) -> list[CourseSignal]:
    categories = ["strategy", "communication", "technical_skills", "leadership", "negotiation"]
    levels = ["beginner", "intermediate", "advanced"]
    return [
        CourseSignal(
            id=f"course-{i}",
            title=f"Course {i}",
            category=categories[i % len(categories)],
            difficulty=levels[i % len(levels)],
        )
        for i in range(n)
    ]


def reload_app(tmp_path) -> tuple[object, object]:
    os.environ["DATA_DIR"] = str(tmp_path)
    if "api.storage" in sys.modules:
        importlib.reload(sys.modules["api.storage"])
    else:
        import api.storage  # noqa: F401
    storage = sys.modules["api.storage"]
    if "api.app" in sys.modules:
        importlib.reload(sys.modules["api.app"])
    else:
        import api.app  # noqa: F401
    app_module = sys.modules["api.app"]
    return storage, app_module


@pytest.fixture
def mbti_bank() -> QuestionBank:
    return build_mbti_bank()


@pytest.fixture
def tki_bank() -> QuestionBank:
    return build_tki_bank()


@pytest.fixture
def shipped_catalog() -> list[CourseSignal]:
    return catalog_from_rows(load_catalog())


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    return reload_app(tmp_path)
