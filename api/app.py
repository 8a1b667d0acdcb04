from __future__ import annotations
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import logging, os, typing as t

# ---- Core imports ----
from assess_core.config import load_config
from assess_core.errors import AssessmentError, ProgressError, RecommendationDataUnavailable
from assess_core.question_bank import KINDS, load_bank, catalog_from_rows
from assess_core.scoring import score
from assess_core.recommend import RankContext, rank_response
from assess_core.progress import apply_progress, course_signals, new_certificate, new_enrollment
from assess_core.analytics import analytics_summary, user_stats
from assess_core.report_html import render_assessment_report, render_certificate
from assess_core.types import MBTIResult, TKIResult
from assess_core import azure_cfg, llm_bridge
from . import storage
from .security import RateLimiter, install as install_security, is_uuid, sanitize_text

log = logging.getLogger(__name__)

app = FastAPI(title="Assessment & Learning API")
LIMITER = RateLimiter()


@app.get("/")
def root():
    return {"status": "ok", "service": "assessment-learning-api"}


ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,  # keep False unless you use cookies
)
install_security(app, LIMITER)


# ---- Schemas ----
class SubmitReq(BaseModel):
    user_id: str
    answers: dict[int, str]

class EnrollReq(BaseModel):
    user_id: str

class ProgressReq(BaseModel):
    user_id: str
    progress: int
    completed_lessons: list[str] = Field(default_factory=list)
    current_lesson: str | None = None
    minutes_spent: int = 0

class RecommendReq(BaseModel):
    user_id: str
    use_ai: bool = False
    learning_style: str | None = None


# ---- Errors ----
def _error(status: int, code: str, message: str) -> JSONResponse:
    return JSONResponse({"error": {"code": code, "message": message}}, status_code=status)

@app.exception_handler(AssessmentError)
async def _assessment_error(_req: Request, exc: AssessmentError):
    body = exc.to_dict()
    missing = getattr(exc, "missing_ids", None)
    if missing:
        body["error"]["missing_ids"] = missing
    return JSONResponse(body, status_code=400)

@app.exception_handler(ProgressError)
async def _progress_error(_req: Request, exc: ProgressError):
    return JSONResponse(exc.to_dict(), status_code=400)

@app.exception_handler(RecommendationDataUnavailable)
async def _data_unavailable(_req: Request, exc: RecommendationDataUnavailable):
    log.warning("data unavailable: %s", exc)
    return _error(503, "DATA_UNAVAILABLE", "Course or assessment data is temporarily unavailable")


# ---- Helpers ----
def _require_uuid(user_id: str) -> None:
    if not is_uuid(user_id):
        raise HTTPException(400, "Invalid UUID format")

def _require_kind(kind: str) -> str:
    k = kind.lower()
    if k not in KINDS:
        raise HTTPException(404, f"unknown assessment kind: {kind}")
    return k

def _serialize_question(q) -> dict[str, t.Any]:
    return {
        "id": q.id,
        "dimension": q.dimension,
        "prompt": q.prompt,
        "options": [{"text": o.text, "tag": o.tag} for o in q.options],
    }

def _result_row(res: MBTIResult | TKIResult, answers: dict[int, str]) -> dict[str, t.Any]:
    row: dict[str, t.Any] = {
        "result": res.to_dict(),
        "responses": {str(k): v for k, v in sorted(answers.items())},
        "completed_at": storage.utcnow_iso(),
        "bank_version": res.bank_version,
    }
    if isinstance(res, MBTIResult):
        scores = [d.score for d in res.dimensions.values()]
        row["mbti_type"] = res.type
        row["confidence_score"] = round(sum(scores) / len(scores)) if scores else 0
    else:
        row["tki_primary_mode"] = res.mode
        row["tki_scores"] = dict(res.scores)
        row["confidence_score"] = res.scores.get(res.mode, 0)
    return row

def _opt_str(value: t.Any) -> str | None:
    return value if isinstance(value, str) and value else None

def _rank_context(user_id: str, learning_style: str | None) -> RankContext:
    try:
        mbti = storage.latest_result(user_id, "mbti", strict=True) or {}
        tki = storage.latest_result(user_id, "tki", strict=True) or {}
        catalog = catalog_from_rows(storage.load_courses())
        tagged, in_progress, completed = course_signals(catalog, storage.list_enrollments(user_id))
    except (KeyError, TypeError, AttributeError) as exc:
        raise RecommendationDataUnavailable(f"malformed recommendation data: {exc}") from exc
    return RankContext(
        personality_type=_opt_str(mbti.get("mbti_type")),
        conflict_mode=_opt_str(tki.get("tki_primary_mode")),
        in_progress=tuple(in_progress),
        completed=tuple(completed),
        catalog=tuple(tagged),
        learning_style=(learning_style or "").strip().lower() or None,
    )


# ---- Health ----
@app.get("/health")
def health():
    cfg = load_config()
    return {
        "llm_backend": llm_bridge.backend_in_use(cfg),
        "use_llm_recommend": bool(cfg.get("USE_LLM_RECOMMEND", False)),
        "azure_config_present": azure_cfg.is_configured(cfg),
        "banks": {k: load_bank(k).version for k in KINDS},
    }


# ---- Assessments ----
@app.get("/assessments/{kind}/questions")
def questions(kind: str):
    bank = load_bank(_require_kind(kind))
    return {
        "kind": bank.kind,
        "version": bank.version,
        "questions": [_serialize_question(q) for q in bank.questions],
    }

@app.post("/assessments/{kind}/submit")
def submit(kind: str, req: SubmitReq):
    _require_uuid(req.user_id)
    bank = load_bank(_require_kind(kind))
    res = score(bank, req.answers)
    return storage.save_result(req.user_id, bank.kind, _result_row(res, req.answers))

@app.get("/users/{user_id}/assessments")
def list_assessments(user_id: str):
    return {"assessments": storage.list_results_for_user(user_id)}

@app.get("/results/{result_id}/report/html")
def report_html_endpoint(result_id: str):
    row = storage.load_result(result_id)
    if not row:
        raise HTTPException(404, "result not found")
    return {"html": render_assessment_report(row)}


# ---- Courses ----
@app.get("/courses")
def courses():
    return {"courses": storage.load_courses()}

@app.post("/courses/{course_id}/enroll")
def enroll(course_id: str, req: EnrollReq):
    _require_uuid(req.user_id)
    if storage.get_course(course_id) is None:
        raise HTTPException(404, "course not found")
    row = new_enrollment(req.user_id, course_id, storage.utcnow(), storage.list_enrollments(req.user_id))
    storage.save_enrollment(row)
    return {"success": True, "message": "Successfully enrolled in course", "enrollment": row}

@app.post("/courses/{course_id}/progress")
def update_progress(course_id: str, req: ProgressReq):
    _require_uuid(req.user_id)
    now = storage.utcnow()
    row = apply_progress(
        storage.find_enrollment(req.user_id, course_id),
        req.progress,
        completed_lessons=req.completed_lessons,
        current_lesson=sanitize_text(req.current_lesson),
        now=now,
        minutes_spent=req.minutes_spent,
    )
    storage.save_enrollment(row)
    out: dict[str, t.Any] = {"success": True, "message": "Progress updated successfully", "enrollment": row}
    if req.progress == 100 and storage.find_certificate(req.user_id, course_id) is None:
        cert = storage.save_certificate(new_certificate(req.user_id, course_id, now))
        out["message"] = "Progress updated and certificate issued!"
        out["certificate"] = cert
    return out

@app.get("/certificates/{certificate_id}/html")
def certificate_html(certificate_id: str, name: str | None = None):
    cert = storage.load_certificate(certificate_id)
    if not cert:
        raise HTTPException(404, "certificate not found")
    return {"html": render_certificate(cert, storage.get_course(str(cert.get("course_id"))), name)}


# ---- Recommendations ----
@app.post("/recommendations")
def recommendations(req: RecommendReq):
    _require_uuid(req.user_id)
    cfg = load_config()

    def fetch() -> RankContext:
        return _rank_context(req.user_id, req.learning_style)

    if req.use_ai:
        resp = llm_bridge.recommend_with_ai(fetch, cfg)
    else:
        resp = rank_response(fetch, cfg)
    return resp.to_dict()


# ---- Analytics ----
@app.get("/users/{user_id}/stats")
def stats(user_id: str):
    return user_stats(
        storage.list_results_for_user(user_id),
        storage.list_enrollments(user_id),
        storage.utcnow().date(),
    )

@app.get("/users/{user_id}/analytics")
def analytics(user_id: str):
    return analytics_summary(
        storage.list_results_for_user(user_id),
        storage.list_enrollments(user_id),
        storage.utcnow().date(),
    )
