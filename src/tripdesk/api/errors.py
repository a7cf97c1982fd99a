"""Exception handlers rendering every failure as {"success": false, "message": ...}.

Mapping:
- TripdeskError subclasses -> their status_code; 5xx messages stay generic.
- RequestValidationError (bad JSON / wrong types) -> 400 naming the fields.
- HTTPException (unknown route, wrong method) -> its status.
- Anything else -> 500, logged with traceback.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tripdesk.errors import TripdeskError, ValidationError
from tripdesk.observability.correlation import get_correlation_id
from tripdesk.observability.logging import get_logger
from tripdesk.observability.redaction import safe_log_context

logger = get_logger(__name__)

_GENERIC_500 = "Internal server error"


def error_body(message: str, fields: list[str] | None = None) -> dict:
    body: dict = {"success": False, "message": message}
    if fields:
        body["error"] = {"fields": fields}
    return body


def _handle_tripdesk_error(request: Request, exc: TripdeskError) -> JSONResponse:
    log_context = safe_log_context(
        correlationId=get_correlation_id(),
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
    )
    if exc.status_code >= 500:
        # Real detail goes to logs only
        log_context["detail"] = exc.message
        logger.error("request failed", extra={"extra_fields": log_context})
    else:
        logger.info("request rejected", extra={"extra_fields": log_context})

    fields = exc.fields if isinstance(exc, ValidationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.client_message, fields),
    )


def _field_name(loc: tuple) -> str:
    # loc looks like ("body", "guests") or ("query", "packageId")
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({_field_name(tuple(err.get("loc", ()))) for err in exc.errors()})
    logger.info(
        "request validation failed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                path=request.url.path,
                fields=",".join(fields),
            )
        },
    )
    return JSONResponse(
        status_code=400,
        content=error_body(f"Invalid request: {', '.join(fields)}", fields),
    )


def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled error",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                path=request.url.path,
                error_type=type(exc).__name__,
            )
        },
    )
    return JSONResponse(status_code=500, content=error_body(_GENERIC_500))


def install_exception_handlers(app: FastAPI) -> None:
    """Register the envelope-rendering handlers on *app*."""
    app.add_exception_handler(TripdeskError, _handle_tripdesk_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected)
