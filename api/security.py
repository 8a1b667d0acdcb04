"""Request hardening for the API: fixed-window rate limiting, security
headers and small input sanitizers.

The limiter keeps its counters in process memory. Several workers or
instances each count on their own, so limits are approximate under
horizontal scaling; that is acceptable for abuse protection.
"""

from __future__ import annotations

import html
import logging
import math
import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from assess_core import config

log = logging.getLogger(__name__)

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.I)

# method, path regex -> bucket
_WRITE_ROUTES: Tuple[Tuple[str, re.Pattern], ...] = (
    ("POST", re.compile(r"^/assessments/[^/]+/submit$")),
    ("POST", re.compile(r"^/courses/[^/]+/enroll$")),
    ("POST", re.compile(r"^/courses/[^/]+/progress$")),
)

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline';",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        return max(1, math.ceil(self.reset_at - now))


class RateLimiter:
    """Fixed window counter per key."""

    def __init__(
        self,
        window_sec: int = config.RATE_LIMIT_WINDOW_SEC,
        clock: Callable[[], float] = time.time,
        prune_at: int = config.RATE_LIMIT_PRUNE_AT,
    ):
        self.window_sec = window_sec
        self.clock = clock
        self.prune_at = prune_at
        self._store: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str, limit: int) -> RateDecision:
        now = self.clock()
        with self._lock:
            win = self._store.get(key)
            if win is None or now > win.reset_at:
                if win is None and len(self._store) >= self.prune_at:
                    self._prune(now)
                win = _Window(count=1, reset_at=now + self.window_sec)
                self._store[key] = win
                return RateDecision(True, limit, limit - 1, win.reset_at)
            if win.count >= limit:
                return RateDecision(False, limit, 0, win.reset_at)
            win.count += 1
            return RateDecision(True, limit, limit - win.count, win.reset_at)

    def _prune(self, now: float) -> None:
        # caller holds the lock
        expired = [k for k, w in self._store.items() if now > w.reset_at]
        for k in expired:
            del self._store[k]
        if expired:
            log.debug("rate limiter pruned %d expired windows", len(expired))

    def __len__(self) -> int:
        return len(self._store)

    def reset(self) -> None:
        with self._lock:
            self._store.clear()


def client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    cf = headers.get("cf-connecting-ip")
    if cf:
        return cf.strip()
    real = headers.get("x-real-ip")
    if real:
        return real.strip()
    fwd = headers.get("x-forwarded-for")
    if fwd:
        return fwd.split(",")[0].strip()
    return peer or "unknown"


def bucket_for(method: str, path: str) -> Tuple[str, int]:
    for m, rx in _WRITE_ROUTES:
        if method.upper() == m and rx.match(path):
            return "write", config.RATE_LIMIT_WRITE
    return "default", config.RATE_LIMIT_DEFAULT


def rate_limit_headers(decision: RateDecision) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(decision.reset_at)),
    }


def is_uuid(value: object) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value))


def sanitize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return html.escape(value, quote=True).replace("/", "&#x2F;")


def install(app: FastAPI, limiter: RateLimiter) -> None:
    @app.middleware("http")
    async def _security(request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)
        peer = request.client.host if request.client else None
        ip = client_ip(request.headers, peer)
        agent = request.headers.get("user-agent") or "unknown"
        bucket, limit = bucket_for(request.method, request.url.path)
        decision = limiter.check(f"{bucket}:{ip}:{agent}", limit)

        if not decision.allowed:
            retry = decision.retry_after(limiter.clock())
            log.warning("rate limit exceeded for %s (%s bucket)", ip, bucket)
            body = {"error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": "Too many requests. Please try again later.",
                "retryAfter": retry,
            }}
            headers = {**SECURITY_HEADERS, **rate_limit_headers(decision), "Retry-After": str(retry)}
            return JSONResponse(body, status_code=429, headers=headers)

        response = await call_next(request)
        for k, v in {**SECURITY_HEADERS, **rate_limit_headers(decision)}.items():
            response.headers[k] = v
        return response
