"""Health check endpoints."""

import logging
from typing import Any

from fastapi import APIRouter
from sqlalchemy import text

from app.core.config import Settings
from app.core.deps import DBSession, RedisDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def integration_status(settings: Settings) -> dict[str, str]:
    """Which external capabilities have credentials configured."""
    configured = {
        "blob_store": bool(settings.cloudinary_cloud_name and settings.cloudinary_api_secret),
        "image_analyzer": bool(settings.openai_api_key),
        "billing": bool(settings.stripe_secret_key and settings.stripe_webhook_secret),
    }
    return {name: "configured" if ok else "missing" for name, ok in configured.items()}


@router.get("/health")
async def health_check(
    db: DBSession,
    redis: RedisDep,
    settings: SettingsDep,
) -> dict[str, Any]:
    """
    Health check endpoint.

    Pings the database and Redis. Missing third-party credentials are
    reported but do not make the service unhealthy.
    """
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        checks["database"] = "unhealthy"

    try:
        await redis.ping()
        checks["redis"] = "healthy"
    except Exception as e:
        logger.warning("Redis health check failed: %s", e)
        checks["redis"] = "unhealthy"

    return {
        "status": "healthy" if all(v == "healthy" for v in checks.values()) else "unhealthy",
        "version": settings.version,
        "environment": settings.environment,
        "checks": checks,
        "integrations": integration_status(settings),
    }


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness probe: the process is up."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: DBSession) -> dict[str, str]:
    """Readiness probe: the database answers."""
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}
