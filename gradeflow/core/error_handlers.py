import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from gradeflow.core.errors import (
    GENERIC_FAILURE_MESSAGE,
    AppError,
    InvalidStateError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _failure(status_code: int, message: str, field: str | None = None, headers=None) -> JSONResponse:
    body = {"success": False, "error": message}
    if field:
        body["field"] = field
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InvalidStateError):
        logger.warning("%s %s: %s", request.method, request.url.path, exc.message)
    elif isinstance(exc, UnauthorizedError):
        logger.info("%s %s: denied (%s)", request.method, request.url.path, exc.reason)
    field = exc.field if isinstance(exc, ValidationError) else None
    return _failure(exc.status_code, exc.message, field)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    loc = [str(p) for p in first.get("loc", []) if p not in ("body", "query", "path")]
    message = first.get("msg", "Invalid input.")
    # union members add their own suffix to the location; report the top-level field
    field = loc[0] if loc else None
    return _failure(status.HTTP_422_UNPROCESSABLE_ENTITY, message, field)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _failure(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("store error on %s %s", request.method, request.url.path)
    return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_FAILURE_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
