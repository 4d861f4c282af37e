"""HTTP mapping for storefront errors.

Every error response carries ``{"error": kind, "message": ..., "detail": {...}}``.
Protean field validation and missing-aggregate errors are reported as
``InvalidInput`` and ``NotFound``; the remaining Protean exceptions keep the
mapping from ``protean.integrations.fastapi``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from storefront.errors import (
    ConcurrencyConflict,
    Forbidden,
    InvalidInput,
    NotFound,
    StorefrontError,
    Unauthorized,
)

logger = structlog.get_logger(__name__)

ERROR_STATUS_CODES = {
    Unauthorized: 401,
    Forbidden: 403,
    NotFound: 404,
    ConcurrencyConflict: 409,
}


def status_code_for(exc: StorefrontError) -> int:
    for error_cls, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_cls):
            return status_code
    return 400


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.info(
        "Request rejected",
        path=request.url.path,
        error=exc.kind,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    error = InvalidInput("Invalid input", errors=getattr(exc, "messages", {}))
    return await storefront_error_handler(request, error)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    return await storefront_error_handler(request, InvalidInput("Invalid request body", errors=errors))


async def object_not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return await storefront_error_handler(request, NotFound(str(exc) or "Not found"))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal", "message": "Internal server error", "detail": {}},
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, object_not_found_handler)
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
