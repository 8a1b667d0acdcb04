from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from . import config as cfg_defaults

log = logging.getLogger(__name__)

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_ASSESSMENT_MILESTONES = (1, 2, 5)
_COURSE_MILESTONES = (1, 5, 10)
_STREAK_MILESTONES = (7, 30)


def _day(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        log.debug("unparseable timestamp %r", value)
        return None


def _activity_days(progress: Iterable[Mapping[str, Any]]) -> Set[date]:
    days: Set[date] = set()
    for row in progress:
        d = _day(row.get("last_accessed_at"))
        if d is not None:
            days.add(d)
    return days


def current_streak(
    progress: Sequence[Mapping[str, Any]],
    today: date,
    window: int = cfg_defaults.STREAK_WINDOW_DAYS,
) -> int:
    """Consecutive active days ending today, looking back at most `window` days."""
    days = _activity_days(progress)
    streak = 0
    cursor = today
    for _ in range(window):
        if cursor not in days:
            break
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def longest_streak(progress: Sequence[Mapping[str, Any]]) -> int:
    days = sorted(_activity_days(progress))
    best = run = 0
    prev: Optional[date] = None
    for d in days:
        run = run + 1 if prev is not None and d - prev == timedelta(days=1) else 1
        best = max(best, run)
        prev = d
    return best


def count_achievements(assessments: int, courses: int, streak: int) -> int:
    return (
        sum(1 for m in _ASSESSMENT_MILESTONES if assessments >= m)
        + sum(1 for m in _COURSE_MILESTONES if courses >= m)
        + sum(1 for m in _STREAK_MILESTONES if streak >= m)
    )


def user_stats(
    assessments: Sequence[Mapping[str, Any]],
    progress: Sequence[Mapping[str, Any]],
    today: date,
) -> Dict[str, int]:
    completed = sum(1 for p in progress if p.get("status") == "completed")
    in_progress = sum(1 for p in progress if p.get("status") == "in_progress")
    minutes = sum(int(p.get("time_spent_minutes") or 0) for p in progress)
    streak = current_streak(progress, today)
    return {
        "total_assessments": len(assessments),
        "total_learning_time": minutes,
        "courses_completed": completed,
        "courses_in_progress": in_progress,
        "achievements": count_achievements(len(assessments), completed, streak),
        "current_streak": streak,
        "longest_streak": max(streak, longest_streak(progress)),
    }


def monthly_trend(
    assessments: Sequence[Mapping[str, Any]],
    today: date,
    months: int = cfg_defaults.TREND_MONTHS,
) -> List[Dict[str, Any]]:
    """Assessment counts for the last `months` calendar months, oldest first."""
    counts: Dict[tuple, int] = {}
    for a in assessments:
        d = _day(a.get("completed_at"))
        if d is not None:
            counts[(d.year, d.month)] = counts.get((d.year, d.month), 0) + 1

    out: List[Dict[str, Any]] = []
    for back in range(months - 1, -1, -1):
        idx = today.year * 12 + (today.month - 1) - back
        year, month = divmod(idx, 12)
        out.append({"month": _MONTHS[month], "year": year, "count": counts.get((year, month + 1), 0)})
    return out


def type_distribution(assessments: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    dist: Dict[str, int] = {}
    for a in assessments:
        name = str(a.get("assessment_type") or "unknown").upper()
        dist[name] = dist.get(name, 0) + 1
    return [{"name": k, "value": v} for k, v in dist.items()]


def average_score(assessments: Sequence[Mapping[str, Any]]) -> int:
    vals = [
        float(a["confidence_score"])
        for a in assessments
        if isinstance(a.get("confidence_score"), (int, float))
    ]
    if not vals:
        return 0
    return round(sum(vals) / len(vals))


def analytics_summary(
    assessments: Sequence[Mapping[str, Any]],
    progress: Sequence[Mapping[str, Any]],
    today: date,
) -> Dict[str, Any]:
    return {
        "stats": user_stats(assessments, progress, today),
        "monthly_trend": monthly_trend(assessments, today),
        "type_distribution": type_distribution(assessments),
        "average_score": average_score(assessments),
    }
