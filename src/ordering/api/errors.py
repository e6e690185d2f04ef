"""Map domain failures onto HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.config import ConfigurationError
from ordering.errors import (
    OrderingError,
    PartialFailure,
    StateConflict,
    UpstreamRejected,
    UpstreamUnavailable,
)

logger = structlog.get_logger(__name__)

STATUS_CODES = {
    StateConflict: 409,
    UpstreamRejected: 422,
    UpstreamUnavailable: 503,
    PartialFailure: 500,
}


def _error_body(exc: OrderingError) -> dict:
    body = {"detail": exc.message}
    body.update({key: value for key, value in exc.context.items() if value is not None})
    return body


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": exc.messages})


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    status_code = 500
    for error_type, code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    if isinstance(exc, UpstreamUnavailable):
        logger.warning("upstream_unavailable", path=request.url.path, **_error_body(exc))
    return JSONResponse(status_code=status_code, content=_error_body(exc))


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("configuration_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Service is not configured"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(OrderingError, ordering_error_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
