"""Service status endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from typerank.api.v1.dependencies import ContextDep, SessionDep
from typerank.core.settings import settings

router = APIRouter(tags=["system"])


@router.get("/status")
async def get_status(context: ContextDep, db: SessionDep) -> dict[str, Any]:
    """Ledger, database, signer and ingestion health in one document."""
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError:
        database = "error"

    ingestor = context.ingestor
    cursor = None
    if context.ledger.enabled:
        try:
            cursor = ingestor.get_cursor()
        except SQLAlchemyError:
            cursor = None

    return {
        "success": True,
        "version": settings.app_version,
        "status": await context.ledger.status(),
        "database": database,
        "signer": context.signer.available,
        "ledger": {
            "source": context.ledger.source,
            "endpoint": context.ledger.base_url,
            "monitor": context.monitor.state.value,
            "metrics": context.ledger.get_metrics(),
        },
        "ingestion": {
            "cursor": cursor,
            "live": ingestor.live_attached,
            "passes": ingestor.metrics.passes,
            "failed_passes": ingestor.metrics.failed_passes,
            "outcomes": dict(ingestor.metrics.outcomes),
            "last_error": ingestor.metrics.last_error,
        },
    }


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    return "pong"


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}
