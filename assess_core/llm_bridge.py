from __future__ import annotations
import json, logging, os, time
from typing import Any, Callable, Dict, Iterable, List, Mapping

from . import config as cfg_defaults
from .azure_cfg import AzureSettings, client as azure_client, settings as azure_settings
from .errors import RecommendationDataUnavailable
from .recommend import RankContext, RecommendSettings, onboarding_recommendations, rank_response
from .types import Recommendation, RecommendationResponse

log = logging.getLogger(__name__)

LOG_FILE = "llm_recommend_log.jsonl"
_PRIORITIES = ("high", "medium", "low")


def backend_in_use(cfg: Mapping[str, Any] | None = None) -> str:
    if cfg is None:
        cfg = cfg_defaults.load_config()
    return cfg_defaults.get_backend(dict(cfg)) or "none"


def _taken_titles(ctx: RankContext) -> List[str]:
    taken = set(ctx.in_progress) | set(ctx.completed)
    return [c.title for c in ctx.catalog if c.id in taken]


def _prompt(ctx: RankContext) -> str:
    titles = [c.title for c in ctx.catalog if c.id not in ctx.in_progress and c.id not in ctx.completed]
    payload = {
        "mbti_type": ctx.personality_type,
        "tki_mode": ctx.conflict_mode,
        "current_courses": list(ctx.in_progress),
        "completed_courses": list(ctx.completed),
        "catalog": titles,
    }
    return (
        "Suggest up to five professional-development steps for this learner. "
        "Prefer titles from the catalog and never repeat current or completed courses.\n"
        f"Input: {json.dumps(payload, ensure_ascii=False)}"
    )


def _ask_azure(prompt: str, s: AzureSettings) -> str:
    cli = azure_client(s)
    system = ("You are a learning advisor. "
              "Return ONLY compact JSON: {\"recommendations\":[{\"title\",\"reason\",\"priority\",\"category\"}]}. "
              "priority is one of high, medium, low. No explanations.")
    resp = cli.chat.completions.create(
        model=s.deployment, messages=[{"role":"system","content":system},{"role":"user","content":prompt}],
        temperature=s.temperature, max_tokens=s.max_tokens, top_p=0.9,
    )
    return resp.choices[0].message.content or "{}"


def parse_recommendations(
    raw: str,
    top_n: int = cfg_defaults.RECOMMEND_TOP_N,
    exclude_titles: Iterable[str] = (),
) -> List[Recommendation]:
    """Strict parse of the model reply; ValueError on anything unusable.

    Items whose title matches an excluded course (case-insensitive) are dropped
    before the reply is cut to `top_n`.
    """
    skip = {t.strip().casefold() for t in exclude_titles}
    data = json.loads(raw)
    items = data.get("recommendations") if isinstance(data, dict) else None
    if not isinstance(items, list) or not items:
        raise ValueError("reply has no recommendations")
    out: List[Recommendation] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        title = str(item.get("title") or "").strip()
        if not title or title.casefold() in skip:
            continue
        prio = str(item.get("priority") or "").lower()
        out.append(Recommendation(
            title=title,
            reason=str(item.get("reason") or "").strip(),
            priority=prio if prio in _PRIORITIES else "medium",
            category=str(item.get("category") or "General").strip(),
        ))
    if not out:
        raise ValueError("reply has no usable recommendations")
    return out[:top_n]


def _append_log(entry: Dict[str, Any]) -> None:
    try:
        with open(LOG_FILE, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except Exception:
        pass


def recommend_with_ai(
    fetch_context: Callable[[], RankContext],
    cfg: Mapping[str, Any] | None = None,
) -> RecommendationResponse:
    """AI-authored recommendations with the rules ranker as the safety net.

    Falls back to :func:`recommend.rank_response` when the backend is off,
    the learner has no assessment signal, or the call/parse fails.
    """
    if cfg is None:
        cfg = cfg_defaults.load_config()
    try:
        ctx = fetch_context()
    except RecommendationDataUnavailable as exc:
        log.warning("recommendation data unavailable, using onboarding list: %s", exc)
        return RecommendationResponse(onboarding_recommendations(), source="rules", model="fallback")

    def fixed() -> RankContext:
        return ctx

    backend = backend_in_use(cfg)
    if backend != "azure" or not (ctx.personality_type or ctx.conflict_mode):
        return rank_response(fixed, cfg)

    t0 = time.time()
    raw: str | None = None
    error: str | None = None
    response: RecommendationResponse | None = None
    try:
        s = azure_settings(cfg)
        raw = _ask_azure(_prompt(ctx), s)
        recs = parse_recommendations(raw, RecommendSettings.from_cfg(cfg).top_n, _taken_titles(ctx))
        response = RecommendationResponse(recommendations=recs, source="ai", model=s.deployment)
    except Exception as e:
        error = str(e)
        log.warning("AI recommendations failed, using rules: %s", e)

    _append_log({
        "ts": round(time.time(), 3),
        "run_id": os.getenv("RUN_ID", ""),
        "backend": backend,
        "type": ctx.personality_type,
        "mode": ctx.conflict_mode,
        "raw": (raw or "")[:2000],
        "error": error,
        "rt_ms": int((time.time()-t0)*1000),
    })
    return response if response is not None else rank_response(fixed, cfg)
