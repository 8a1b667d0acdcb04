from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from assess_core import llm_bridge
from assess_core.errors import RecommendationDataUnavailable
from assess_core.recommend import RankContext, onboarding_recommendations

AZURE_ON = {"USE_LLM_RECOMMEND": True, "LLM_BACKEND": "azure"}


@pytest.fixture
def ctx(shipped_catalog) -> RankContext:
    return RankContext("INFJ", "accommodating", ("c-negotiation",), (), tuple(shipped_catalog))


@pytest.fixture(autouse=True)
def _isolated_azure(tmp_path, monkeypatch):
    monkeypatch.setattr(llm_bridge, "LOG_FILE", str(tmp_path / "llm_recommend_log.jsonl"))
    monkeypatch.setattr(llm_bridge, "azure_settings", lambda _cfg=None: SimpleNamespace(deployment="gpt-test"))


def test_backend_off_uses_rules(ctx, monkeypatch):
    def _boom(_prompt, _settings):
        raise AssertionError("LLM must not be called")

    monkeypatch.setattr(llm_bridge, "_ask_azure", _boom)
    resp = llm_bridge.recommend_with_ai(lambda: ctx, {"USE_LLM_RECOMMEND": False, "LLM_BACKEND": "azure"})
    assert resp.source == "rules"
    assert resp.model == "rules-v1"


def test_ai_reply_is_used(ctx, monkeypatch):
    reply = {"recommendations": [
        {"title": "Assertive Communication", "reason": "Practice voicing needs", "priority": "HIGH", "category": "communication"},
        {"title": "", "reason": "dropped"},
        {"title": "Team Facilitation", "reason": "Lead group discussions", "priority": "urgent"},
    ]}
    monkeypatch.setattr(llm_bridge, "_ask_azure", lambda _p, _s: json.dumps(reply))

    resp = llm_bridge.recommend_with_ai(lambda: ctx, AZURE_ON)

    assert resp.source == "ai"
    assert resp.model == "gpt-test"
    assert [r.title for r in resp.recommendations] == ["Assertive Communication", "Team Facilitation"]
    assert [r.priority for r in resp.recommendations] == ["high", "medium"]
    assert resp.recommendations[1].category == "General"


def test_ai_reply_drops_enrolled_courses(ctx, monkeypatch):
    reply = {"recommendations": [
        {"title": "principled negotiation ", "reason": "already enrolled", "priority": "high"},
        {"title": "Conflict Resolution in Practice", "reason": "Name tensions early", "priority": "high"},
    ]}
    monkeypatch.setattr(llm_bridge, "_ask_azure", lambda _p, _s: json.dumps(reply))

    resp = llm_bridge.recommend_with_ai(lambda: ctx, AZURE_ON)

    assert resp.source == "ai"
    assert [r.title for r in resp.recommendations] == ["Conflict Resolution in Practice"]


def test_ai_reply_of_only_enrolled_courses_uses_rules(ctx, monkeypatch):
    reply = {"recommendations": [{"title": "Principled Negotiation", "reason": "again", "priority": "high"}]}
    monkeypatch.setattr(llm_bridge, "_ask_azure", lambda _p, _s: json.dumps(reply))

    resp = llm_bridge.recommend_with_ai(lambda: ctx, AZURE_ON)

    assert resp.source == "rules"
    assert "c-negotiation" not in [r.course_id for r in resp.recommendations]


def test_ai_reply_respects_configured_top_n(ctx, monkeypatch):
    reply = {"recommendations": [{"title": f"Step {i}", "reason": "r"} for i in range(6)]}
    monkeypatch.setattr(llm_bridge, "_ask_azure", lambda _p, _s: json.dumps(reply))

    resp = llm_bridge.recommend_with_ai(lambda: ctx, dict(AZURE_ON, RECOMMEND_TOP_N=2))

    assert [r.title for r in resp.recommendations] == ["Step 0", "Step 1"]


def test_failed_call_falls_back_and_logs(ctx, monkeypatch, tmp_path):
    def _fail(_prompt, _settings):
        raise RuntimeError("Azure OpenAI not configured")

    monkeypatch.setattr(llm_bridge, "_ask_azure", _fail)
    resp = llm_bridge.recommend_with_ai(lambda: ctx, AZURE_ON)

    assert resp.source == "rules"
    assert "c-negotiation" not in [r.course_id for r in resp.recommendations]
    lines = (tmp_path / "llm_recommend_log.jsonl").read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["backend"] == "azure"
    assert "not configured" in entry["error"]


def test_malformed_reply_falls_back(ctx, monkeypatch):
    monkeypatch.setattr(llm_bridge, "_ask_azure", lambda _p, _s: "Sure! Here are some ideas")
    resp = llm_bridge.recommend_with_ai(lambda: ctx, AZURE_ON)
    assert resp.source == "rules"
    assert resp.model == "rules-v1"


def test_no_signal_skips_llm(shipped_catalog, monkeypatch):
    monkeypatch.setattr(llm_bridge, "_ask_azure", lambda _p, _s: pytest.fail("LLM must not be called"))
    empty = RankContext(None, None, (), (), tuple(shipped_catalog))
    resp = llm_bridge.recommend_with_ai(lambda: empty, AZURE_ON)
    assert resp.recommendations == onboarding_recommendations()
    assert resp.model == "fallback"


def test_data_failure_returns_fallback():
    def broken():
        raise RecommendationDataUnavailable("enrollments unreadable")

    resp = llm_bridge.recommend_with_ai(broken, AZURE_ON)
    assert resp.recommendations == onboarding_recommendations()
    assert resp.model == "fallback"


@pytest.mark.parametrize("raw", ["[]", "{}", '{"recommendations": []}', '{"recommendations": [{"reason": "x"}]}'])
def test_parse_rejects_unusable_replies(raw):
    with pytest.raises(ValueError):
        llm_bridge.parse_recommendations(raw)
