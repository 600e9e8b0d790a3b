"""
API 에러 응답 / 로깅

Every error leaves the API in the same envelope
(`{"success": false, "error": {"code", "message", "details"}}`) and every
log line starts with the error code and the caller, so a failed tip or
payout can be traced from the logs by code and user id.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from .exceptions import BaseAPIException, InternalServerError

logger = logging.getLogger("noobwriter")

HTTP_ERROR = "HTTP_ERROR"
VALIDATION_ERROR = "VALIDATION_001"


def _caller(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    return f"user={user_id}" if user_id is not None else "user=anonymous"


def _log_api_error(
    request: Request,
    status_code: int,
    error_code: str,
    message: Any,
    trace: Optional[str] = None,
) -> None:
    line = (
        f"[{error_code}] {request.method} {request.url.path} {_caller(request)} "
        f"-> {status_code}: {message}"
    )
    if status_code >= 500:
        logger.error(f"{line}\n{trace}" if trace else line)
    else:
        logger.warning(line)


def _error_body(error_code: str, message: str, details: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": error_code, "message": message, "details": details},
    }


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    _log_api_error(request, exc.status_code, exc.error_code, exc.message)
    if exc.details:
        logger.debug(f"[{exc.error_code}] details: {exc.details}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.details),
        headers=getattr(exc, "headers", None),
    )


async def handle_http_exception(request: Request, exc):
    """Framework-raised HTTPException (404 route, 405 method, ...)"""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
        error_code = content["error"].get("code", HTTP_ERROR)
    else:
        content = _error_body(HTTP_ERROR, str(exc.detail), {})
        error_code = HTTP_ERROR

    trace = None
    if exc.status_code >= 500:
        trace = "".join(traceback.format_tb(exc.__traceback__))
    _log_api_error(request, exc.status_code, error_code, exc.detail, trace)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc):
    errors = [str(e.get("msg", e)) for e in exc.errors()]
    _log_api_error(request, 422, VALIDATION_ERROR, errors)
    return JSONResponse(
        status_code=422,
        content=_error_body(VALIDATION_ERROR, "Validation failed", {"errors": errors}),
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    internal = InternalServerError()
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    _log_api_error(
        request,
        internal.status_code,
        internal.error_code,
        f"unhandled {type(exc).__name__}: {exc}",
        trace,
    )
    # raw exception text stays in the log
    return JSONResponse(
        status_code=internal.status_code,
        content=_error_body(internal.error_code, internal.message, {}),
    )
