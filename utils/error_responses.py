"""JSON error rendering shared by every route.

Errors are returned as `{"error": "<message>"}`; details stay in the log.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from models.errors import RotationError

LOGGER = logging.getLogger(__name__)


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def rotation_error_handler(request: Request, exc: RotationError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    else:
        LOGGER.info("%s %s rejected: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return error_response(405, "method not allowed", headers=getattr(exc, "headers", None))
    return await http_exception_handler(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RotationError, rotation_error_handler)
    app.add_exception_handler(StarletteHTTPException, method_not_allowed_handler)
