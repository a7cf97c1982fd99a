"""FastAPI application factory."""

import os
from typing import Literal

from fastapi import FastAPI, Request, Response

from tripdesk.observability.correlation import (
    CORRELATION_ID_HEADER,
    reset_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)
from tripdesk.observability.logging import get_logger

from .errors import install_exception_handlers
from .routers import public

AppRole = Literal["public"]


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        role: Explicit role override. If None, reads from APP_ROLE env var.
              "public" is the only role; anything else is rejected.

    Returns:
        Configured FastAPI application.

    Raises:
        ValueError: If the role is unknown.
    """
    if role is None:
        role = os.environ.get("APP_ROLE", "public")  # type: ignore[assignment]
    if role != "public":
        raise ValueError(f"Unknown APP_ROLE: {role}")

    # Domain and gateway modules use plain module loggers; give their
    # parents the JSON handler so those records reach stdout too.
    for parent in ("tripdesk.domain", "tripdesk.gateway"):
        get_logger(parent)

    app = FastAPI(
        title="Tripdesk",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    install_exception_handlers(app)
    app.include_router(public.router)

    return app
