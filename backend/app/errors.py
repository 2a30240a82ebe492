"""
Ошибки приложения и их преобразование в HTTP ответы.
"""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .config import settings


logger = logging.getLogger(__name__)


class AppError(Exception):
    """Базовая ошибка приложения."""
    status_code = 500
    code = "internal"
    retryable = False

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class InvalidArgument(AppError):
    """Некорректные входные данные."""
    status_code = 400
    code = "invalid_argument"


class Unauthenticated(AppError):
    """Нет или неверный токен."""
    status_code = 401
    code = "unauthenticated"


class Forbidden(AppError):
    """Недостаточно прав (роль или владелец)."""
    status_code = 403
    code = "forbidden"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"


class Unavailable(AppError):
    """Хранилище или внешний провайдер недоступны. Можно повторить запрос."""
    status_code = 500
    code = "unavailable"
    retryable = True


def _error_body(message: str, code: str, retryable: bool = False) -> dict:
    return {"detail": message, "code": code, "retryable": retryable}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, Unavailable):
        logger.warning(f"[ERROR] {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.code, exc.retryable),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = _error_body("Validation failed", InvalidArgument.code)
    body["errors"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=400, content=body)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"[ERROR] Unhandled error on {request.method} {request.url.path}: {exc}")
    body = _error_body("Internal server error", "internal")
    if settings.DEBUG:
        body["traceback"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Регистрирует обработчики ошибок в приложении."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
