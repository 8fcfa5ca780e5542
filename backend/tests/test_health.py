"""Health check endpoint tests."""

from httpx import AsyncClient


async def test_health_check_returns_healthy(api_client: AsyncClient):
    """Health endpoint returns healthy status."""
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
