# src/typerank/main.py
"""Main entry point for the TypeRank application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from typerank.api.v1 import (
    achievements_router,
    challenges_router,
    game_router,
    leaderboard_router,
    system_router,
)
from typerank.context import AppContext, build_app_context
from typerank.core.errors import (
    AuthorizationError,
    InvalidStateError,
    LedgerError,
    SigningUnavailableError,
    TypeRankError,
    ValidationError,
)
from typerank.core.logging import configure_logging
from typerank.core.settings import settings
from typerank.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="TypeRank API",
    description="Typing game scoring and ledger-backed leaderboard",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(leaderboard_router, prefix="/api")
app.include_router(game_router, prefix="/api")
app.include_router(achievements_router, prefix="/api")
app.include_router(challenges_router, prefix="/api")
app.include_router(system_router, prefix="/api")

_STATUS_BY_ERROR: tuple[tuple[type[TypeRankError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (SigningUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (LedgerError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _error_body(message: str) -> dict[str, object]:
    return ErrorResponse(error=message).model_dump()


@app.exception_handler(TypeRankError)
async def handle_typerank_error(request: Request, exc: TypeRankError) -> JSONResponse:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=_error_body(str(exc)))


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_body(str(message)))


@app.exception_handler(LookupError)
async def handle_not_found(request: Request, exc: LookupError) -> JSONResponse:
    message = str(exc.args[0]) if exc.args else "Not found"
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_body(message))


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal error"),
    )


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging(settings.log_level)
    context = build_app_context()
    app.state.context = context
    await context.start()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    context: AppContext | None = getattr(app.state, "context", None)
    if context:
        await context.stop()


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Typing game scoring and ledger-backed leaderboard",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("typerank.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
