"""
HTTP error type and FastAPI exception handlers.

Every failure leaves the API as ``{"error": str, "details": any}`` with the
matching status code.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class HttpError(Exception):
    """Error carrying an HTTP status, a user-facing message and optional details."""

    def __init__(self, status_code: int, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


def error_payload(message: str, details: Optional[Any] = None) -> dict:
    return {"error": message, "details": details}


async def http_error_handler(request: Request, exc: HttpError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message} ({exc.details})")
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_payload(exc.message, exc.details))
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_payload("请求参数无效", details))
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload("服务器错误，请稍后再试")
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to an application instance."""
    app.add_exception_handler(HttpError, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
