"""
JSON envelope shared by every Agent API response.

    {"ok": true,  "data": ...}
    {"ok": false, "error": {"code": ..., "message": ..., "details": ...}}
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError as FastAPIValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..exceptions import AgentOSError, ErrorCode

logger = logging.getLogger(__name__)


def ok(data: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        {"ok": True, "data": jsonable_encoder(data)},
        status_code=status_code,
        headers=headers,
    )


def fail(code: str, message: str, details: Any = None, status_code: int = 400) -> JSONResponse:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return JSONResponse({"ok": False, "error": error}, status_code=status_code)


async def _agentos_error_handler(request: Request, exc: AgentOSError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return fail(exc.code, exc.message, exc.details, exc.status_code)


async def _validation_error_handler(request: Request, exc: FastAPIValidationError) -> JSONResponse:
    return fail(ErrorCode.VALIDATION_ERROR.value, "invalid request", exc.errors(), 400)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    return fail(code, str(exc.detail), None, exc.status_code)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Internals are logged, never returned
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return fail(ErrorCode.INTERNAL_ERROR.value, "internal error", None, 500)


def install_error_handlers(app: FastAPI) -> None:
    """Route every failure through the error envelope."""
    app.add_exception_handler(AgentOSError, _agentos_error_handler)
    app.add_exception_handler(FastAPIValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
