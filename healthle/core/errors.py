"""
Error responses shared by the portal apps.

Every failure leaves the API as ``{"error": <message>}``, optionally with
a ``details`` field, which is the shape the portal frontends read:

- HTTPException keeps its status code; a string detail becomes ``error``,
  a dict detail is used as the body as-is
- RequestValidationError becomes 400 with per-field details
- anything else becomes 500 without leaking internals outside development
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from healthle.core.config import settings

logger = logging.getLogger(__name__)

VALIDATION_ERROR_MESSAGE = "バリデーションエラー"
UNEXPECTED_ERROR_MESSAGE = "予期せぬエラーが発生しました"


def error_detail(message: str, exc: Optional[BaseException] = None) -> Any:
    """
    Build an HTTPException detail carrying the underlying error in development.

    Args:
        message: User-facing error message
        exc: Exception whose message is exposed as ``details`` in development

    Returns:
        The plain message, or ``{"error": message, "details": str(exc)}``
    """
    if exc is not None and settings.is_development:
        return {"error": message, "details": str(exc)}
    return message


def register_error_handlers(app: FastAPI) -> None:
    """Register the JSON error handlers on a portal app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict):
            content = exc.detail
        else:
            content = {"error": exc.detail}
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "Validation error",
            extra={"path": request.url.path, "errors": exc.errors()},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": VALIDATION_ERROR_MESSAGE,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in e["loc"]),
                        "message": e["msg"],
                        "type": e["type"],
                    }
                    for e in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"path": request.url.path},
        )
        content = {"error": UNEXPECTED_ERROR_MESSAGE}
        if settings.is_development:
            content["details"] = str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
        )
