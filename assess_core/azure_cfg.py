# assess_core/azure_cfg.py
"""Azure OpenAI connection and sampling settings for AI recommendations.

Connection fields are resolved per field: environment (``AZURE_OPENAI_*``),
then the same keys in config.json, then the legacy ``.azure_config.json``.
"""
from __future__ import annotations
import os, json, pathlib
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping
from openai import AzureOpenAI

from . import config as cfg_defaults

LEGACY_FILE = ".azure_config.json"
_CONNECTION = ("endpoint", "api_key", "api_version", "deployment")

@dataclass(frozen=True)
class AzureSettings:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str
    temperature: float = cfg_defaults.LLM_RECOMMEND_TEMPERATURE
    max_tokens: int = cfg_defaults.LLM_RECOMMEND_MAX_TOKENS

def _key(field: str) -> str:
    return f"AZURE_OPENAI_{field.upper()}"

def _legacy(path: str = LEGACY_FILE) -> Dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists(): return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return {k: str(j.get(k) or "") for k in _CONNECTION} if isinstance(j, dict) else {}

def _layers(cfg: Mapping[str, Any]) -> List[Dict[str, str]]:
    return [
        {k: os.getenv(_key(k), "") for k in _CONNECTION},
        {k: str(cfg.get(_key(k)) or "") for k in _CONNECTION},
        _legacy(),
    ]

def settings(cfg: Mapping[str, Any] | None = None) -> AzureSettings:
    if cfg is None:
        cfg = cfg_defaults.load_config()
    conn: Dict[str, str] = {}
    for layer in _layers(cfg):
        for k in _CONNECTION:
            if not conn.get(k) and layer.get(k):
                conn[k] = layer[k]
    missing = [k for k in _CONNECTION if not conn.get(k)]
    if missing:
        raise RuntimeError(f"Azure OpenAI not configured. Missing: {', '.join(missing)}")
    return AzureSettings(
        temperature=float(cfg.get("LLM_RECOMMEND_TEMPERATURE", cfg_defaults.LLM_RECOMMEND_TEMPERATURE)),
        max_tokens=int(cfg.get("LLM_RECOMMEND_MAX_TOKENS", cfg_defaults.LLM_RECOMMEND_MAX_TOKENS)),
        **conn,
    )

def is_configured(cfg: Mapping[str, Any] | None = None) -> bool:
    try:
        settings(cfg)
    except RuntimeError:
        return False
    return True

def client(s: AzureSettings) -> AzureOpenAI:
    return AzureOpenAI(
        azure_endpoint=s.endpoint,
        api_key=s.api_key,
        api_version=s.api_version,
    )
