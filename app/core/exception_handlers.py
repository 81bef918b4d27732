"""Exception handlers rendering every failure in the same JSON envelope.

- AppError subclasses -> their own status and message
- Starlette HTTPException (unknown route, bad method) -> same envelope
- SQLAlchemyError and anything unexpected -> generic 500, details logged only
"""

import logging
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import AppError, NotFoundError

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = AppError.default_message


def error_response(status_code: int, message: Any, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'error': message}, headers=headers)


def log_error(request: Request, exc: BaseException):
    logger.error(
        str(exc) or type(exc).__name__,
        extra={
            'error_type': type(exc).__name__,
            'request_method': request.method,
            'request_url': str(request.url),
        },
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        log_error(request, exc)
    return error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == HTTPStatus.NOT_FOUND:
        message = NotFoundError.default_message
    elif exc.status_code == HTTPStatus.METHOD_NOT_ALLOWED:
        message = f'the {request.method} method is not supported for this resource'
    else:
        message = exc.detail
    return error_response(exc.status_code, message, headers=getattr(exc, 'headers', None))


async def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the real error with request context; the client only sees a generic message."""
    log_error(request, exc)
    return error_response(500, SERVER_ERROR_MESSAGE)


def setup_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(SQLAlchemyError)(server_error_handler)
    app.exception_handler(Exception)(server_error_handler)
