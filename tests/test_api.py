from __future__ import annotations

import uuid

import pytest

from fastapi.testclient import TestClient

from assess_core.question_bank import load_bank


def _uid() -> str:
    return str(uuid.uuid4())


def _first_option_answers(kind: str) -> dict[str, str]:
    return {str(q.id): q.options[0].tag for q in load_bank(kind).questions}


def test_questions_endpoint(app_env):
    _storage, app_module = app_env
    client = TestClient(app_module.app)

    body = client.get("/assessments/mbti/questions").json()
    assert body["kind"] == "mbti"
    assert len(body["questions"]) == 64
    assert body["questions"][0]["options"][0]["tag"] in ("E", "I")

    assert client.get("/assessments/disc/questions").status_code == 404


def test_submit_scores_and_upserts(app_env):
    storage, app_module = app_env
    client = TestClient(app_module.app)
    uid = _uid()

    first = client.post("/assessments/mbti/submit", json={"user_id": uid, "answers": _first_option_answers("mbti")})
    assert first.status_code == 200
    row = first.json()
    assert row["mbti_type"] == "ESTJ"
    assert row["confidence_score"] == 100
    assert row["result"]["dimensions"]["EI"]["score"] == 100

    second = client.post("/assessments/mbti/submit", json={"user_id": uid, "answers": _first_option_answers("mbti")})
    assert second.json()["id"] == row["id"]
    assert len(storage.list_results_for_user(uid)) == 1

    listed = client.get(f"/users/{uid}/assessments").json()["assessments"]
    assert [r["id"] for r in listed] == [row["id"]]

    html = client.get(f"/results/{row['id']}/report/html").json()["html"]
    assert "ESTJ" in html
    assert client.get("/results/nope/report/html").status_code == 404


def test_submit_errors(app_env):
    _storage, app_module = app_env
    client = TestClient(app_module.app)

    answers = _first_option_answers("tki")
    answers.pop("7")
    resp = client.post("/assessments/tki/submit", json={"user_id": _uid(), "answers": answers})
    assert resp.status_code == 400
    err = resp.json()["error"]
    assert err["code"] == "INCOMPLETE_ASSESSMENT"
    assert err["missing_ids"] == [7]

    answers = _first_option_answers("tki")
    answers["7"] = "E"
    resp = client.post("/assessments/tki/submit", json={"user_id": _uid(), "answers": answers})
    assert resp.json()["error"]["code"] == "INVALID_ANSWER"

    resp = client.post("/assessments/tki/submit", json={"user_id": "bob", "answers": {}})
    assert resp.status_code == 400


def test_recommendations_flow(app_env):
    _storage, app_module = app_env
    client = TestClient(app_module.app)
    uid = _uid()

    empty = client.post("/recommendations", json={"user_id": uid}).json()
    assert empty["model"] == "fallback"
    assert [r["title"] for r in empty["recommendations"]] == ["Complete Your Assessments", "Explore Course Catalog"]

    client.post("/assessments/mbti/submit", json={"user_id": uid, "answers": _first_option_answers("mbti")})
    client.post("/assessments/tki/submit", json={"user_id": uid, "answers": _first_option_answers("tki")})
    assert client.post("/courses/c-effective-communication/enroll", json={"user_id": uid}).status_code == 200

    body = client.post("/recommendations", json={"user_id": uid, "learning_style": "analytical"}).json()
    assert body["source"] == "rules"
    assert body["model"] == "rules-v1"
    ids = [r["course_id"] for r in body["recommendations"]]
    assert len(ids) == 5
    assert "c-effective-communication" not in ids
    # ESTJ + competing + analytical: data analysis hits difficulty and technical rules
    assert ids[0] == "c-data-analysis"
    assert body["recommendations"][0]["priority"] == "high"


def test_recommendations_survive_corrupt_catalog(app_env):
    storage, app_module = app_env
    client = TestClient(app_module.app)
    uid = _uid()
    client.post("/assessments/mbti/submit", json={"user_id": uid, "answers": _first_option_answers("mbti")})

    storage.CATALOG_PATH.write_text("{not json", encoding="utf-8")
    resp = client.post("/recommendations", json={"user_id": uid})
    assert resp.status_code == 200
    assert resp.json()["model"] == "fallback"

    assert client.get("/courses").status_code == 503


@pytest.mark.parametrize("target,payload", [
    ("RESULTS_PATH", "[]"),
    ("RESULTS_PATH", '{"r1": "not a row"}'),
    ("ENROLLMENTS_PATH", '{"a": 1}'),
    ("ENROLLMENTS_PATH", '["c-negotiation"]'),
])
def test_recommendations_survive_misshapen_files(app_env, target, payload):
    storage, app_module = app_env
    client = TestClient(app_module.app)
    uid = _uid()
    client.post("/assessments/mbti/submit", json={"user_id": uid, "answers": _first_option_answers("mbti")})

    getattr(storage, target).write_text(payload, encoding="utf-8")
    for use_ai in (False, True):
        resp = client.post("/recommendations", json={"user_id": uid, "use_ai": use_ai})
        assert resp.status_code == 200
        assert resp.json()["model"] == "fallback"


def test_enroll_progress_and_certificate(app_env):
    _storage, app_module = app_env
    client = TestClient(app_module.app)
    uid = _uid()

    resp = client.post("/courses/c-negotiation/progress", json={"user_id": uid, "progress": 10})
    assert resp.json()["error"]["code"] == "NOT_ENROLLED"

    assert client.post("/courses/c-negotiation/enroll", json={"user_id": uid}).status_code == 200
    again = client.post("/courses/c-negotiation/enroll", json={"user_id": uid})
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "ALREADY_ENROLLED"
    assert client.post("/courses/c-missing/enroll", json={"user_id": uid}).status_code == 404

    bad = client.post("/courses/c-negotiation/progress", json={"user_id": uid, "progress": 150})
    assert bad.json()["error"]["code"] == "INVALID_PROGRESS"

    half = client.post(
        "/courses/c-negotiation/progress",
        json={"user_id": uid, "progress": 50, "current_lesson": "<b>3</b>", "minutes_spent": 30},
    ).json()
    assert half["enrollment"]["status"] == "in_progress"
    assert half["enrollment"]["current_lesson"] == "&lt;b&gt;3&lt;&#x2F;b&gt;"
    assert "certificate" not in half

    done = client.post("/courses/c-negotiation/progress", json={"user_id": uid, "progress": 100}).json()
    assert done["enrollment"]["status"] == "completed"
    cert = done["certificate"]

    repeat = client.post("/courses/c-negotiation/progress", json={"user_id": uid, "progress": 100}).json()
    assert "certificate" not in repeat

    html = client.get(f"/certificates/{cert['id']}/html", params={"name": "Sam Lee"}).json()["html"]
    assert "Principled Negotiation" in html
    assert "Sam Lee" in html

    stats = client.get(f"/users/{uid}/stats").json()
    assert stats["courses_completed"] == 1
    assert stats["total_learning_time"] == 30
    assert stats["current_streak"] == 1

    analytics = client.get(f"/users/{uid}/analytics").json()
    assert analytics["stats"] == stats
    assert len(analytics["monthly_trend"]) == 6


def test_health(app_env):
    _storage, app_module = app_env
    body = TestClient(app_module.app).get("/health").json()
    assert body["llm_backend"] == "none"
    assert body["banks"]["mbti"] == load_bank("mbti").version
