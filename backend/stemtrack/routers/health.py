"""Liveness and readiness probes."""

from datetime import datetime
from typing import Awaitable, Callable

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from stemtrack.config import settings
from stemtrack.database import engine
from stemtrack.realtime.broker import get_redis

router = APIRouter(tags=["health"])


async def _ping_database() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _ping_redis() -> None:
    client = await get_redis()
    await client.ping()


async def _probe(check: Callable[[], Awaitable[None]]) -> str:
    try:
        await check()
    except Exception as e:
        return f"error: {str(e)[:100]}"
    return "ok"


@router.get("/health")
async def health_check():
    """Process is up. Touches neither the database nor Redis."""
    return {
        "status": "ok",
        "service": "StemTrack",
        "environment": settings.environment,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/health/ready")
async def readiness_check():
    """Ready to scan: the store answers and the change feed can publish."""
    checks = {
        "database": await _probe(_ping_database),
        "change_feed": await _probe(_ping_redis),
    }
    ready = all(result == "ok" for result in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "degraded",
            "service": "StemTrack",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
