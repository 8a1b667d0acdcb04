from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import ProgressError
from .types import CourseSignal

log = logging.getLogger(__name__)

STATUS_NOT_STARTED = "not_started"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"


def _iso(now: datetime) -> str:
    return now.isoformat(timespec="seconds")


def new_enrollment(
    user_id: str,
    course_id: str,
    now: datetime,
    existing: Iterable[Mapping[str, Any]] = (),
) -> Dict[str, Any]:
    for row in existing:
        if row.get("user_id") == user_id and row.get("course_id") == course_id:
            raise ProgressError("ALREADY_ENROLLED", "User is already enrolled in this course")
    return {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "course_id": course_id,
        "enrolled_at": _iso(now),
        "progress_percentage": 0,
        "status": STATUS_NOT_STARTED,
        "completed_lessons": [],
        "current_lesson": None,
        "last_accessed_at": _iso(now),
        "time_spent_minutes": 0,
    }


def apply_progress(
    enrollment: Optional[Mapping[str, Any]],
    progress: int,
    completed_lessons: Sequence[Any] = (),
    current_lesson: Any = None,
    now: Optional[datetime] = None,
    minutes_spent: int = 0,
) -> Dict[str, Any]:
    """Return an updated copy of `enrollment`.

    100 marks the course completed (and stamps completed_at once),
    anything above 0 marks it in progress. 0 leaves the status alone.
    """
    if enrollment is None:
        raise ProgressError("NOT_ENROLLED", "User is not enrolled in this course")
    if isinstance(progress, bool) or not isinstance(progress, int) or progress < 0 or progress > 100:
        raise ProgressError("INVALID_PROGRESS", "Progress must be between 0 and 100")
    now = now or datetime.now()

    row = dict(enrollment)
    row["progress_percentage"] = progress
    row["completed_lessons"] = list(completed_lessons)
    row["current_lesson"] = current_lesson
    row["last_accessed_at"] = _iso(now)
    row["time_spent_minutes"] = int(row.get("time_spent_minutes") or 0) + max(0, int(minutes_spent))
    if progress == 100:
        row["status"] = STATUS_COMPLETED
        if not row.get("completed_at"):
            row["completed_at"] = _iso(now)
    elif progress > 0:
        row["status"] = STATUS_IN_PROGRESS
    log.info("progress %s/%s -> %d%% (%s)", row.get("user_id"), row.get("course_id"), progress, row.get("status"))
    return row


def new_certificate(user_id: str, course_id: str, now: datetime) -> Dict[str, Any]:
    cert_id = str(uuid.uuid4())
    return {
        "id": cert_id,
        "user_id": user_id,
        "course_id": course_id,
        "certificate_url": f"certificates/{cert_id}/html",
        "issued_at": _iso(now),
        "is_verified": True,
    }


def course_signals(
    catalog: Sequence[CourseSignal],
    enrollments: Iterable[Mapping[str, Any]],
) -> Tuple[List[CourseSignal], List[str], List[str]]:
    """Tag catalog entries with the user's relation; returns (catalog, in_progress, completed)."""
    status: Dict[str, str] = {}
    for row in enrollments:
        cid = str(row.get("course_id") or "")
        if cid:
            status[cid] = str(row.get("status") or STATUS_NOT_STARTED)

    in_progress = [cid for cid, s in status.items() if s != STATUS_COMPLETED]
    completed = [cid for cid, s in status.items() if s == STATUS_COMPLETED]
    tagged = [
        CourseSignal(
            id=c.id, title=c.title, category=c.category, difficulty=c.difficulty,
            relation=("completed" if status[c.id] == STATUS_COMPLETED else "in_progress") if c.id in status else "none",
        )
        for c in catalog
    ]
    return tagged, in_progress, completed
