"""Exception handlers that give every failing request the same JSON shape.

    {"error": {"code": "NOT_FOUND", "message": "...", "details": {...}}}

``details`` is omitted when empty.  Domain errors carry their own status
and code; framework errors are mapped here.  Decisions are never errors:
a denied ``/api/authorize`` call is a 200 with ``allowed: false``.
"""

import logging
from typing import Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from redis import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from geoauthz.errors import GeoAuthzError

logger = logging.getLogger(__name__)


def error_body(code: str, message: str, details: Union[dict, list, None] = None) -> dict:
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"error": error}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message, details))


def _request_fields(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


async def domain_error_handler(request: Request, exc: GeoAuthzError) -> JSONResponse:
    """Ledger, workflow and registry failures surfaced through ``Outcome.unwrap``."""
    logger.info(
        "%s on %s %s: %s",
        exc.error_code, request.method, request.url.path, exc.message,
        extra={"error_code": exc.error_code, **_request_fields(request)},
    )
    return error_response(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_error_handler(
    request: Request, exc: Union[HTTPException, StarletteHTTPException]
) -> JSONResponse:
    # 401/403 from the auth dependencies land here
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}",
                     extra=_request_fields(request))
    return error_response(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))


async def validation_error_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    fields = [
        {
            "field": " -> ".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(f"Rejected payload on {request.url.path} ({len(fields)} field error(s))",
                   extra=_request_fields(request))
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Validation error",
        {"errors": fields},
    )


async def store_error_handler(request: Request, exc: RedisError) -> JSONResponse:
    """The Redis store is down or timing out."""
    logger.error(f"Store unavailable on {request.url.path}: {exc}", extra=_request_fields(request))
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "STORE_UNAVAILABLE",
        "Authorization store temporarily unavailable. Please try again.",
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception on {request.url.path}", extra=_request_fields(request))
    # Internal details stay in the log
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


HANDLERS = (
    (GeoAuthzError, domain_error_handler),
    (HTTPException, http_error_handler),
    (StarletteHTTPException, http_error_handler),
    (RequestValidationError, validation_error_handler),
    (ValidationError, validation_error_handler),
    (RedisError, store_error_handler),
    (Exception, unhandled_error_handler),
)


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class, handler in HANDLERS:
        app.add_exception_handler(exc_class, handler)
