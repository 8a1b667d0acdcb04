from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List
from .types import Option, Question, QuestionBank, CourseSignal
MBTI_DIMENSIONS = ("EI","SN","TF","JP")
TKI_MODES = ("competing","collaborating","compromising","avoiding","accommodating")
KINDS = ("mbti","tki")
DATA_DIR = Path(__file__).with_name("data")
def _read(name: str) -> Any:
    return json.loads((DATA_DIR / name).read_text(encoding="utf-8"))
def bank_from_dict(raw: Dict[str, Any]) -> QuestionBank:
    questions = tuple(
        Question(
            id=int(q["id"]),
            dimension=str(q["dimension"]),
            prompt=str(q["prompt"]),
            options=tuple(Option(text=str(o["text"]), tag=str(o["tag"])) for o in q.get("options", [])),
        )
        for q in raw.get("questions", [])
    )
    return QuestionBank(kind=raw["kind"], version=str(raw.get("version", "")), questions=questions)
@lru_cache(maxsize=None)
def load_bank(kind: str) -> QuestionBank:
    if kind not in KINDS:
        raise ValueError(f"unknown assessment kind: {kind}")
    return bank_from_dict(_read(f"{kind}_bank.json"))
@lru_cache(maxsize=None)
def load_type_profiles() -> Dict[str, Any]:
    return _read("mbti_types.json")
@lru_cache(maxsize=None)
def load_mode_profiles() -> Dict[str, Any]:
    return _read("tki_modes.json")
def catalog_from_rows(rows: List[Dict[str, Any]]) -> List[CourseSignal]:
    out: List[CourseSignal] = []
    for r in rows:
        out.append(CourseSignal(
            id=str(r["id"]),
            title=str(r.get("title") or r["id"]),
            category=str(r.get("category") or ""),
            difficulty=str(r.get("difficulty_level") or r.get("difficulty") or ""),
        ))
    return out
def load_catalog() -> List[Dict[str, Any]]:
    return list(_read("courses.json").get("courses", []))
