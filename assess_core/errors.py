from __future__ import annotations
from typing import Iterable, List


class AssessmentError(ValueError):
    code = "ASSESSMENT_ERROR"

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": str(self)}}


class IncompleteAssessmentError(AssessmentError):
    code = "INCOMPLETE_ASSESSMENT"

    def __init__(self, missing_ids: Iterable[int]):
        self.missing_ids: List[int] = sorted(missing_ids)
        shown = ", ".join(str(i) for i in self.missing_ids[:10])
        more = "" if len(self.missing_ids) <= 10 else f" (+{len(self.missing_ids) - 10} more)"
        super().__init__(f"missing answers for question(s) {shown}{more}")


class InvalidAnswerError(AssessmentError):
    code = "INVALID_ANSWER"

    def __init__(self, question_id: object, tag: object, valid: Iterable[str] = ()):
        self.question_id = question_id
        self.tag = tag
        self.valid = tuple(valid)
        if self.valid:
            msg = f"answer {tag!r} is not valid for question {question_id} (expected one of {', '.join(self.valid)})"
        else:
            msg = f"question {question_id} is not part of this assessment"
        super().__init__(msg)


class RecommendationDataUnavailable(RuntimeError):
    """Raised by course/assessment data sources the ranker depends on."""


class ProgressError(ValueError):
    """Enrollment/progress rule violation; `code` is INVALID_PROGRESS, ALREADY_ENROLLED or NOT_ENROLLED."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": str(self)}}
