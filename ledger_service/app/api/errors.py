"""LedgerError -> HTTP 응답 매핑.

응답 본문은 {"detail": {"code": ..., "message": ...}} 형태다.
"""

from __future__ import annotations

import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..exceptions import ContentionError, CooldownActiveError, LedgerError


def _ledger_error_response(request: Request, exc: LedgerError) -> JSONResponse:
    detail: dict[str, object] = {"code": exc.code, "message": exc.message}
    headers: dict[str, str] = {}

    if isinstance(exc, CooldownActiveError):
        remaining_seconds = max(math.ceil(exc.remaining.total_seconds()), 0)
        detail["remaining_seconds"] = remaining_seconds
        headers["Retry-After"] = str(remaining_seconds)
    elif isinstance(exc, ContentionError):
        detail["retryable"] = True

    return JSONResponse(
        status_code=int(exc.status_code),
        content={"detail": detail},
        headers=headers or None,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, _ledger_error_response)  # type: ignore[arg-type]
