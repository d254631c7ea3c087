"""Tests for health check endpoints."""

import fakeredis.aioredis
import pytest
from httpx import AsyncClient

from app.api.v1.health import integration_status
from app.core.config import Settings


async def test_root(plain_client: AsyncClient) -> None:
    """Test root endpoint returns API info."""
    response = await plain_client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Derma API"
    assert "version" in data
    assert data["health"] == "/api/v1/health"


async def test_liveness(plain_client: AsyncClient) -> None:
    """Test liveness probe endpoint."""
    response = await plain_client.get("/api/v1/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


async def test_health_reports_dependencies(unauthed_client: AsyncClient) -> None:
    """Database and Redis checks both pass against the test doubles."""
    response = await unauthed_client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert data["checks"] == {"database": "healthy", "redis": "healthy"}
    # Test settings carry a webhook secret but no provider keys
    assert data["integrations"] == {
        "blob_store": "missing",
        "image_analyzer": "missing",
        "billing": "missing",
    }


async def test_health_reports_unreachable_redis(
    unauthed_client: AsyncClient,
    fake_redis: fakeredis.aioredis.FakeRedis,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _down() -> bool:
        raise ConnectionError("redis down")

    monkeypatch.setattr(fake_redis, "ping", _down)

    response = await unauthed_client.get("/api/v1/health")

    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["checks"]["redis"] == "unhealthy"
    assert data["checks"]["database"] == "healthy"


def test_integration_status(test_settings: Settings) -> None:
    settings = test_settings.model_copy(
        update={"openai_api_key": "sk-test", "stripe_secret_key": "sk_test_1"}
    )

    assert integration_status(settings) == {
        "blob_store": "missing",
        "image_analyzer": "configured",
        "billing": "configured",
    }


async def test_readiness(unauthed_client: AsyncClient) -> None:
    response = await unauthed_client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


async def test_security_headers_and_request_id(plain_client: AsyncClient) -> None:
    """Every response carries the request id and hardening headers."""
    response = await plain_client.get("/", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "max-age" in response.headers["Strict-Transport-Security"]
