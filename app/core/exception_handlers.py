"""Centralized exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import DomainError

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render a domain error as {"detail", "code", ...extra}."""
    if exc.status_code >= 500:
        logger.error(f"Domain error on {request.url.path}: {exc}")
    else:
        logger.info(f"Rejected {request.method} {request.url.path}: {exc}")
    content = {"detail": exc.message, "code": exc.code.value}
    content.update(exc.extra())
    return JSONResponse(status_code=exc.status_code, content=content)


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


EXCEPTION_HANDLERS = {
    DomainError: domain_error_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
