import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leave_engine.config import get_settings
from leave_engine.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Liveness of the engine and reachability of the ledger database."""

    status: Literal["ok", "degraded"]
    service: str
    version: str
    environment: str
    database: Literal["up", "down"]


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report service health. A database outage degrades rather than fails the check."""
    settings = get_settings()
    database: Literal["up", "down"] = "up"

    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: leave database unreachable")
        database = "down"

    return HealthResponse(
        status="ok" if database == "up" else "degraded",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        database=database,
    )
