from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from . import config as cfg_defaults
from .errors import RecommendationDataUnavailable
from .types import CourseSignal, Recommendation, RecommendationResponse

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankContext:
    """Inputs for one ranking call, as gathered from the data collaborators."""
    personality_type: Optional[str]
    conflict_mode: Optional[str]
    in_progress: Tuple[str, ...]
    completed: Tuple[str, ...]
    catalog: Tuple[CourseSignal, ...]
    learning_style: Optional[str] = None


@dataclass(frozen=True)
class AffinityRule:
    group: str
    condition: Callable[[CourseSignal, RankContext], bool]
    bonus: int
    reason: str


def _cat(course: CourseSignal) -> str:
    return course.category.lower()


def _style(ctx: RankContext) -> str:
    return (ctx.learning_style or cfg_defaults.RECOMMEND_DEFAULT_LEARNING_STYLE).lower()


def _ptype(ctx: RankContext) -> str:
    return (ctx.personality_type or "").upper()


def _mode(ctx: RankContext) -> str:
    return (ctx.conflict_mode or "").lower()


# Groups add up; inside a group the first matching rule wins.
AFFINITY_RULES: Tuple[AffinityRule, ...] = (
    AffinityRule(
        "difficulty",
        lambda c, x: c.difficulty == "beginner" and _style(x) in ("visual", "hands-on"),
        cfg_defaults.DIFFICULTY_BONUS,
        "Beginner level suits a {style} learning style",
    ),
    AffinityRule(
        "difficulty",
        lambda c, x: c.difficulty == "intermediate" and _style(x) == "analytical",
        cfg_defaults.DIFFICULTY_BONUS,
        "Intermediate depth suits an analytical learning style",
    ),
    AffinityRule(
        "difficulty",
        lambda c, x: c.difficulty == "advanced" and _style(x) == "logical",
        cfg_defaults.DIFFICULTY_BONUS,
        "Advanced material suits a logical learning style",
    ),
    AffinityRule(
        "personality",
        lambda c, x: _ptype(x).startswith("IN") and "strategy" in _cat(c),
        cfg_defaults.PERSONALITY_BONUS,
        "Strategic topics match your {ptype} preference for big-picture thinking",
    ),
    AffinityRule(
        "personality",
        lambda c, x: _ptype(x).startswith("ES") and "communication" in _cat(c),
        cfg_defaults.PERSONALITY_BONUS,
        "Communication skills build on your {ptype} outward focus",
    ),
    AffinityRule(
        "personality",
        lambda c, x: "T" in _ptype(x) and "technical" in _cat(c),
        cfg_defaults.PERSONALITY_BONUS,
        "Technical depth fits your {ptype} thinking preference",
    ),
    AffinityRule(
        "personality",
        lambda c, x: "F" in _ptype(x) and "leadership" in _cat(c),
        cfg_defaults.PERSONALITY_BONUS,
        "People-centred leadership fits your {ptype} feeling preference",
    ),
    AffinityRule(
        "conflict",
        lambda c, x: _mode(x) in ("avoiding", "accommodating")
        and ("communication" in _cat(c) or "conflict" in _cat(c)),
        cfg_defaults.CONFLICT_BONUS,
        "Builds assertiveness alongside your {mode} conflict style",
    ),
    AffinityRule(
        "conflict",
        lambda c, x: _mode(x) == "competing" and ("team" in _cat(c) or "leadership" in _cat(c)),
        cfg_defaults.CONFLICT_BONUS,
        "Balances your competing style with collaborative leadership",
    ),
    AffinityRule(
        "conflict",
        lambda c, x: _mode(x) in ("collaborating", "compromising") and "negotiation" in _cat(c),
        cfg_defaults.CONFLICT_BONUS,
        "Negotiation practice extends your {mode} approach",
    ),
)


@dataclass(frozen=True)
class RecommendSettings:
    top_n: int
    high_min: int
    medium_min: int

    @staticmethod
    def from_cfg(cfg: Mapping[str, Any] | None) -> "RecommendSettings":
        def _cfg_value(name: str, default: Any) -> Any:
            if cfg is None:
                return default
            if isinstance(cfg, Mapping) and name in cfg:
                return cfg[name]
            return getattr(cfg, name, default)

        return RecommendSettings(
            top_n=max(0, int(_cfg_value("RECOMMEND_TOP_N", cfg_defaults.RECOMMEND_TOP_N))),
            high_min=int(_cfg_value("RECOMMEND_HIGH_MIN", cfg_defaults.RECOMMEND_HIGH_MIN)),
            medium_min=int(_cfg_value("RECOMMEND_MEDIUM_MIN", cfg_defaults.RECOMMEND_MEDIUM_MIN)),
        )


def onboarding_recommendations() -> List[Recommendation]:
    return [
        Recommendation(
            title="Complete Your Assessments",
            reason="Take MBTI and TKI assessments to receive personalized recommendations",
            priority="high",
            category="Getting Started",
        ),
        Recommendation(
            title="Explore Course Catalog",
            reason="Browse available courses across various categories",
            priority="medium",
            category="Learning",
        ),
    ]


def priority_for(score: int, settings: RecommendSettings) -> str:
    if score >= settings.high_min:
        return "high"
    if score >= settings.medium_min:
        return "medium"
    return "low"


def score_course(
    course: CourseSignal,
    ctx: RankContext,
    rules: Sequence[AffinityRule] = AFFINITY_RULES,
) -> Tuple[int, List[str]]:
    """Additive score plus the reasons of every rule that fired."""
    total = 0
    reasons: List[str] = []
    fired: set = set()
    for rule in rules:
        if rule.group in fired:
            continue
        if rule.condition(course, ctx):
            fired.add(rule.group)
            total += rule.bonus
            reasons.append(rule.reason.format(
                style=_style(ctx), ptype=_ptype(ctx), mode=_mode(ctx),
            ))
    return total, reasons


def _justify(course: CourseSignal, reasons: List[str]) -> str:
    if not reasons:
        return f"Broadens your {course.category.replace('_', ' ') or 'general'} skills"
    return "; ".join(reasons)


def recommend(
    personality_type: Optional[str],
    conflict_mode: Optional[str],
    in_progress: Iterable[str],
    completed: Iterable[str],
    catalog: Sequence[CourseSignal],
    learning_style: Optional[str] = None,
    cfg: Mapping[str, Any] | None = None,
) -> List[Recommendation]:
    """Rank the catalog for one user.

    Courses already in progress or completed are dropped, the rest are scored
    against :data:`AFFINITY_RULES` and sorted by score (catalog order kept on
    ties). With neither a type nor a mode, the onboarding list is returned.
    """
    if not personality_type and not conflict_mode:
        return onboarding_recommendations()

    settings = RecommendSettings.from_cfg(cfg)
    ctx = RankContext(
        personality_type=personality_type,
        conflict_mode=conflict_mode,
        in_progress=tuple(in_progress),
        completed=tuple(completed),
        catalog=tuple(catalog),
        learning_style=learning_style,
    )
    excluded = set(ctx.in_progress) | set(ctx.completed)

    scored: List[Tuple[int, CourseSignal, List[str]]] = []
    for course in ctx.catalog:
        if course.id in excluded or course.relation != "none":
            continue
        pts, reasons = score_course(course, ctx)
        scored.append((pts, course, reasons))

    # sorted() is stable
    scored = sorted(scored, key=lambda row: -row[0])[: settings.top_n]

    out = [
        Recommendation(
            title=course.title,
            reason=_justify(course, reasons),
            priority=priority_for(pts, settings),
            category=course.category,
            course_id=course.id,
            score=pts,
        )
        for pts, course, reasons in scored
    ]
    log.info(
        "ranked %d of %d courses (type=%s mode=%s)",
        len(out), len(ctx.catalog), personality_type, conflict_mode,
    )
    return out


def recommend_for_user(
    fetch_context: Callable[[], RankContext],
    cfg: Mapping[str, Any] | None = None,
) -> Tuple[List[Recommendation], bool]:
    """Gather inputs and rank; a data failure degrades to onboarding.

    Returns ``(recommendations, degraded)``.
    """
    try:
        ctx = fetch_context()
    except RecommendationDataUnavailable as exc:
        log.warning("recommendation data unavailable, using onboarding list: %s", exc)
        return onboarding_recommendations(), True
    recs = recommend(
        ctx.personality_type,
        ctx.conflict_mode,
        ctx.in_progress,
        ctx.completed,
        ctx.catalog,
        learning_style=ctx.learning_style,
        cfg=cfg,
    )
    no_signal = not ctx.personality_type and not ctx.conflict_mode
    return recs, no_signal


def rank_response(
    fetch_context: Callable[[], RankContext],
    cfg: Mapping[str, Any] | None = None,
) -> RecommendationResponse:
    recs, fallback = recommend_for_user(fetch_context, cfg)
    return RecommendationResponse(
        recommendations=recs,
        source="rules",
        model="fallback" if fallback else "rules-v1",
    )

