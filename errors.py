from typing import Iterable

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException

logger = structlog.get_logger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or malformed input, including schema violations."""
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Duplicate unique key. Reported as a 400 like other bad input."""
    status_code = 400


class InternalError(AppError):
    status_code = 500


def _field_name(loc: Iterable) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form")]
    return ".".join(parts)


def join_validation_errors(errors: list) -> str:
    """Collapse pydantic error entries into one human readable message."""
    messages = []
    for err in errors:
        field = _field_name(err.get("loc", ()))
        msg = err.get("msg", "Invalid value")
        messages.append(f"{field}: {msg}." if field else f"{msg}.")
    return " ".join(messages)


def from_pydantic(exc: PydanticValidationError) -> ValidationError:
    return ValidationError(join_validation_errors(exc.errors()))


def register_error_handlers(app: FastAPI):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": join_validation_errors(exc.errors())})

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        return JSONResponse(status_code=400, content={"message": "Duplicate value for a unique field."})

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, method=request.method)
        return JSONResponse(status_code=500, content={"message": "Internal Server Error", "error": str(exc)})
