from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_LOG = logging.getLogger("app.http")

BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-site",
    # The booking form offers "use my current location".
    "Permissions-Policy": "geolocation=(self), microphone=(), camera=(), payment=(), usb=()",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}

_STREAM_SUFFIX = "/stream"


def _request_id_from_header(raw: str | None) -> str:
    value = str(raw or "").strip()
    if value and _REQUEST_ID_RE.fullmatch(value):
        return value
    return uuid4().hex


def response_headers_for_path(path: str) -> dict[str, str]:
    headers = dict(BASE_HEADERS)
    if path.endswith(_STREAM_SUFFIX):
        # event streams must reach the browser unbuffered
        headers["Cache-Control"] = "no-cache"
        headers["X-Accel-Buffering"] = "no"
    else:
        headers["Cache-Control"] = "no-store"
    return headers


def install_http_hardening(app: FastAPI) -> None:
    @app.middleware("http")
    async def _http_hardening_middleware(request: Request, call_next):
        request_id = _request_id_from_header(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        started_at = perf_counter()

        response = await call_next(request)

        path = request.url.path
        response.headers.update(response_headers_for_path(path))
        response.headers[REQUEST_ID_HEADER] = request_id
        duration_ms = (perf_counter() - started_at) * 1000.0
        response.headers[RESPONSE_TIME_HEADER] = f"{duration_ms:.1f}"

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        _LOG.log(
            level,
            "%s %s status=%s duration_ms=%.2f request_id=%s",
            request.method,
            path,
            response.status_code,
            duration_ms,
            request_id,
        )
        return response
