"""
Exception handlers — every error leaves the API as a JSON error envelope.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from auth.exceptions import INVALID_DATA_MESSAGE, AuthError, ValidationError
from auth.schemas import format_validation_errors
from config.settings import config

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s — %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(config.debug))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={
                "status": "error",
                "message": INVALID_DATA_MESSAGE,
                "errors": format_validation_errors(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = {"status": "error", "message": "Server error."}
        if config.debug:
            content["details"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
