from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=400, detail=detail)


def upstream_failure(exc: Exception, *, detail: str) -> HTTPException:
    # The caller only sees the generic detail; the cause stays in the logs.
    logger.error("%s: %s", detail, exc, exc_info=exc)
    return HTTPException(status_code=500, detail=detail)


def error_payload(detail: object) -> dict[str, object]:
    return {"error": detail if detail is not None else "Error"}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        error_payload(exc.detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )
