from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import List, Dict, Optional, Literal, Tuple
AssessmentKind = Literal["mbti","tki"]
Priority = Literal["high","medium","low"]
CourseRelation = Literal["none","in_progress","completed"]
@dataclass(frozen=True)
class Option:
    text: str; tag: str
@dataclass(frozen=True)
class Question:
    id: int; dimension: str; prompt: str
    options: Tuple[Option, ...] = ()
    def tags(self) -> Tuple[str, ...]:
        return tuple(o.tag for o in self.options)
@dataclass(frozen=True)
class QuestionBank:
    kind: AssessmentKind
    version: str
    questions: Tuple[Question, ...]
    def ids(self) -> List[int]:
        return [q.id for q in self.questions]
    def get(self, qid: int) -> Optional[Question]:
        for q in self.questions:
            if q.id == qid:
                return q
        return None
    def valid_tags(self, qid: int) -> Tuple[str, ...]:
        q = self.get(qid)
        return q.tags() if q is not None else ()
@dataclass(frozen=True)
class DimensionResult:
    letter: str; description: str; score: int
@dataclass(frozen=True)
class MBTIResult:
    type: str
    dimensions: Dict[str, DimensionResult]
    name: str
    description: str
    strengths: Tuple[str, ...] = ()
    development_areas: Tuple[str, ...] = ()
    career_suggestions: Tuple[str, ...] = ()
    bank_version: str = ""
    kind: AssessmentKind = "mbti"
    def to_dict(self) -> Dict[str, object]:
        return asdict(self)
@dataclass(frozen=True)
class TKIResult:
    mode: str
    style: str
    description: str
    scores: Dict[str, int]
    counts: Dict[str, int] = field(default_factory=dict)
    insights: Tuple[str, ...] = ()
    communication_tips: Tuple[str, ...] = ()
    growth_areas: Tuple[str, ...] = ()
    bank_version: str = ""
    kind: AssessmentKind = "tki"
    def to_dict(self) -> Dict[str, object]:
        return asdict(self)
@dataclass(frozen=True)
class CourseSignal:
    id: str; title: str; category: str; difficulty: str
    relation: CourseRelation = "none"
@dataclass(frozen=True)
class Recommendation:
    title: str
    reason: str
    priority: Priority
    category: str
    course_id: Optional[str] = None
    score: int = 0
@dataclass
class RecommendationResponse:
    recommendations: List[Recommendation]
    source: Literal["ai","rules"] = "rules"
    model: str = "rules-v1"
    def to_dict(self) -> Dict[str, object]:
        return {
            "recommendations": [asdict(r) for r in self.recommendations],
            "source": self.source,
            "model": self.model,
        }
