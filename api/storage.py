"""JSON-file persistence for assessment results, enrollments and certificates.

A production deployment should swap this module for a database-backed
implementation. For now everything lives in a few JSON files under
``DATA_DIR`` so the API stays stateless across restarts.
"""

from __future__ import annotations

import json
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from assess_core.errors import RecommendationDataUnavailable
from assess_core.question_bank import load_catalog


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
RESULTS_PATH = DATA_ROOT / "assessment_results.json"
ENROLLMENTS_PATH = DATA_ROOT / "enrollments.json"
CERTIFICATES_PATH = DATA_ROOT / "certificates.json"
CATALOG_PATH = DATA_ROOT / "courses.json"

_LOCK = threading.Lock()


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return default


def _read_json_strict(path: Path, default: Any) -> Any:
    """Like _read_json, but a present-yet-unreadable file is a data outage."""
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise RecommendationDataUnavailable(f"cannot read {path.name}: {exc}") from exc


def _load_results(strict: bool = False) -> Dict[str, Dict[str, Any]]:
    """Results table keyed by id; a wrong shape is an outage when strict, empty otherwise."""
    data = (_read_json_strict if strict else _read_json)(RESULTS_PATH, {})
    if isinstance(data, dict) and all(isinstance(r, dict) for r in data.values()):
        return data
    if strict:
        raise RecommendationDataUnavailable(f"{RESULTS_PATH.name} is not a table of result rows")
    return {}


def _load_enrollments() -> List[Dict[str, Any]]:
    rows = _read_json_strict(ENROLLMENTS_PATH, [])
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise RecommendationDataUnavailable(f"{ENROLLMENTS_PATH.name} is not a list of enrollment rows")
    return rows


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    return utcnow().isoformat()


# ---- assessment results ----

def save_result(user_id: str, kind: str, row: Dict[str, Any]) -> Dict[str, Any]:
    """Upsert: one stored result per user and assessment kind."""
    with _LOCK:
        results = _load_results()
        existing_id = next(
            (rid for rid, r in results.items() if r.get("user_id") == user_id and r.get("assessment_type") == kind),
            None,
        )
        rid = existing_id or str(uuid.uuid4())
        stored = dict(row, id=rid, user_id=user_id, assessment_type=kind)
        results[rid] = stored
        _write_json(RESULTS_PATH, results)
    return stored


def load_result(result_id: str) -> Optional[Dict[str, Any]]:
    return _load_results().get(result_id)


def list_results_for_user(user_id: str, strict: bool = False) -> List[Dict[str, Any]]:
    out = [r for r in _load_results(strict).values() if r.get("user_id") == user_id]
    out.sort(key=lambda r: r.get("completed_at", ""), reverse=True)
    return out


def latest_result(user_id: str, kind: str, strict: bool = False) -> Optional[Dict[str, Any]]:
    for row in list_results_for_user(user_id, strict=strict):
        if row.get("assessment_type") == kind:
            return row
    return None


# ---- catalog ----

def load_courses() -> List[Dict[str, Any]]:
    """Catalog rows from DATA_DIR, or the bundled sample catalog."""
    data = _read_json_strict(CATALOG_PATH, None)
    if data is None:
        return load_catalog()
    rows = data.get("courses") if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise RecommendationDataUnavailable("courses.json has no course list")
    if not all(isinstance(r, dict) for r in rows):
        raise RecommendationDataUnavailable("courses.json has non-object course rows")
    return rows


def get_course(course_id: str) -> Optional[Dict[str, Any]]:
    for row in load_courses():
        if str(row.get("id")) == course_id:
            return row
    return None


# ---- enrollments ----

def list_enrollments(user_id: str) -> List[Dict[str, Any]]:
    return [r for r in _load_enrollments() if r.get("user_id") == user_id]


def find_enrollment(user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
    for row in list_enrollments(user_id):
        if row.get("course_id") == course_id:
            return row
    return None


def save_enrollment(row: Dict[str, Any]) -> Dict[str, Any]:
    """Insert or replace by id."""
    with _LOCK:
        rows = [r for r in _load_enrollments() if r.get("id") != row.get("id")]
        rows.append(row)
        _write_json(ENROLLMENTS_PATH, rows)
    return row


# ---- certificates ----

def find_certificate(user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
    certs: Dict[str, Dict[str, Any]] = _read_json(CERTIFICATES_PATH, {})
    for cert in certs.values():
        if cert.get("user_id") == user_id and cert.get("course_id") == course_id:
            return cert
    return None


def save_certificate(cert: Dict[str, Any]) -> Dict[str, Any]:
    with _LOCK:
        certs: Dict[str, Dict[str, Any]] = _read_json(CERTIFICATES_PATH, {})
        certs[cert["id"]] = cert
        _write_json(CERTIFICATES_PATH, certs)
    return cert


def load_certificate(certificate_id: str) -> Optional[Dict[str, Any]]:
    certs: Dict[str, Dict[str, Any]] = _read_json(CERTIFICATES_PATH, {})
    return certs.get(certificate_id)
