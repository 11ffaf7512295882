"""Maps domain errors to HTTP responses.

Protean's own handlers cover the generic exceptions; the workshop errors get
their own status codes and a body of ``{"error": code, "messages": ..., **context}``.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from workshop.errors import (
    ConcurrentModification,
    Conflict,
    InvalidCommissionConfiguration,
    InvalidTransition,
    PartialBatchRejected,
)

_STATUS_CODES = {
    InvalidCommissionConfiguration: 422,
    InvalidTransition: 409,
    ConcurrentModification: 409,
    PartialBatchRejected: 409,
    Conflict: 409,
}


async def _workshop_error(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_CODES[type(exc)],
        content={"error": exc.code, "messages": exc.messages, **exc.context()},
    )


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "validation_error", "messages": exc.messages})


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    messages = getattr(exc, "messages", None) or {"_entity": [str(exc)]}
    return JSONResponse(status_code=404, content={"error": "not_found", "messages": messages})


def register_workshop_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    for error_class in _STATUS_CODES:
        app.add_exception_handler(error_class, _workshop_error)
