from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


RECOMMEND_TOP_N: int = 5
RECOMMEND_HIGH_MIN: int = 15
RECOMMEND_MEDIUM_MIN: int = 5
RECOMMEND_DEFAULT_LEARNING_STYLE: str = "balanced"

DIFFICULTY_BONUS: int = 10
PERSONALITY_BONUS: int = 5
CONFLICT_BONUS: int = 5

USE_LLM_RECOMMEND: bool = False
LLM_RECOMMEND_MAX_TOKENS: int = 600
LLM_RECOMMEND_TEMPERATURE: float = 0.2

RATE_LIMIT_WINDOW_SEC: int = 60
RATE_LIMIT_DEFAULT: int = 60
RATE_LIMIT_WRITE: int = 30
RATE_LIMIT_PRUNE_AT: int = 10_000

BANK_MIN_PER_DIMENSION: int = 1
BANK_MIN_OPTIONS: int = 2

STREAK_WINDOW_DAYS: int = 30
TREND_MONTHS: int = 6

# env overrides
RECOMMEND_TOP_N = _env_int("RECOMMEND_TOP_N", RECOMMEND_TOP_N)
USE_LLM_RECOMMEND = _env_bool("USE_LLM_RECOMMEND", USE_LLM_RECOMMEND)
LLM_RECOMMEND_TEMPERATURE = _env_float("LLM_RECOMMEND_TEMPERATURE", LLM_RECOMMEND_TEMPERATURE)
RATE_LIMIT_WINDOW_SEC = _env_int("RATE_LIMIT_WINDOW_SEC", RATE_LIMIT_WINDOW_SEC)
RATE_LIMIT_DEFAULT = _env_int("RATE_LIMIT_DEFAULT", RATE_LIMIT_DEFAULT)
RATE_LIMIT_WRITE = _env_int("RATE_LIMIT_WRITE", RATE_LIMIT_WRITE)


def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("USE_LLM_RECOMMEND"): cfg["USE_LLM_RECOMMEND"] = _env_bool("USE_LLM_RECOMMEND", False)
    if e.get("LLM_BACKEND"): cfg["LLM_BACKEND"] = e.get("LLM_BACKEND")
    for k in ("RECOMMEND_TOP_N", "RECOMMEND_HIGH_MIN", "RECOMMEND_MEDIUM_MIN"):
        if e.get(k): cfg[k] = _env_int(k, globals()[k])
    return cfg
def get_backend(cfg: dict) -> str|None:
    if not cfg.get("USE_LLM_RECOMMEND", USE_LLM_RECOMMEND): return None
    b = (cfg.get("LLM_BACKEND") or "").lower().strip()
    return b if b == "azure" else None
