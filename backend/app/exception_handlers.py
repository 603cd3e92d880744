"""
JSON error responses for the HTTP surface.

Every AppException becomes `{"detail", "error_code", **extra}` with the
exception's status code; for example a sync that is already running:

    409 {"detail": "Repository sync already in progress",
         "error_code": "SYNC_IN_PROGRESS",
         "job_id": "<unfinished job>"}

Anything else becomes a 500 without internals. FastAPI's own HTTPException
(401 from auth, 503 before startup) keeps FastAPI's default handler.
"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.exceptions import AppException

logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    # Client errors are expected traffic; server errors need attention
    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_code}: {exc.message}",
        extra={"error": exc.message, **_job_context(exc)},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            **exc.extra,
            "detail": exc.message,
            "error_code": exc.error_code,
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        f"{request.method} {request.url.path} -> unhandled {type(exc).__name__}: {exc}",
        extra={"error": str(exc)},
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def _job_context(exc: AppException) -> dict:
    job_id = getattr(exc, "job_id", None)
    return {"job_id": job_id} if job_id else {}
