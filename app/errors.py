"""Exception handlers translating errors into JSON error payloads"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.features.tasks.domain import FieldViolation, StorageError, TaskNotFoundError, TaskValidationError

logger = logging.getLogger(__name__)

# Request parts that prefix pydantic error locations
_LOCATION_PREFIXES = ("body", "query", "path", "header")


def _error_response(status_code: int, message: str, violations=None) -> JSONResponse:
    content = {"message": message}
    if violations is not None:
        content["violations"] = [v.model_dump() for v in violations]
    return JSONResponse(status_code=status_code, content=content)


def _request_violations(exc: RequestValidationError) -> list:
    violations = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if error.get("type") == "json_invalid":
            # loc carries a character offset here, not a field
            loc = ["body"]
        elif len(loc) > 1 and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        violations.append(
            FieldViolation(
                field=".".join(loc) or "body",
                message=error.get("msg", "Invalid value"),
                code=error.get("type", "invalid"),
            )
        )
    return violations


async def task_validation_error_handler(request: Request, exc: TaskValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return _error_response(400, "Validation failed", exc.violations)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    violations = _request_violations(exc)
    logger.info(f"{request.method} {request.url.path} rejected: {[v.field for v in violations]}")
    return _error_response(400, "Validation failed", violations)


async def task_not_found_handler(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    return _error_response(404, str(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = _error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    # Details were logged by the repository; never leak them to the client
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return _error_response(500, "Internal server error")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskValidationError, task_validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(TaskNotFoundError, task_not_found_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
