"""Unified API error envelope."""
from __future__ import annotations

import uuid

from fastapi.responses import JSONResponse


def error_envelope(
    *,
    code: str,
    message: str,
    trace_id: str,
    detail: str | None = None,
    legacy_error: bool = True,
) -> dict:
    out = {
        "code": code,
        "message": message,
        "trace_id": trace_id,
    }
    if detail:
        out["detail"] = detail
    # Clients that predate `code` read `error`.
    if legacy_error:
        out["error"] = code
    return out


def error_response(
    *,
    code: str,
    message: str,
    trace_id: str | None,
    detail: str | None = None,
    status_code: int = 500,
) -> JSONResponse:
    trace_id = trace_id or str(uuid.uuid4())[:16]
    resp = JSONResponse(
        content=error_envelope(code=code, message=message, trace_id=trace_id, detail=detail),
        status_code=status_code,
    )
    resp.headers["X-Request-Id"] = trace_id
    return resp
