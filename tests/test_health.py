"""Health, root endpoint and shutdown hook tests."""

import pytest
from httpx import AsyncClient

from app.main import app, shutdown


async def test_health_returns_200(client: AsyncClient) -> None:
    """GET /health returns 200 and status healthy."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_root_lists_protected_endpoints(client: AsyncClient) -> None:
    """GET / describes the service and the authenticated command endpoint."""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "online"
    assert "/ai-command" in data["authentication"]["protected_endpoints"]


async def test_shutdown_closes_language_model(monkeypatch: pytest.MonkeyPatch, scripted_model) -> None:
    """The shutdown hook closes the configured language model client."""
    model = scripted_model()
    monkeypatch.setattr(app.state, "language_model", model, raising=False)
    await shutdown()
    assert model.closed is True


async def test_shutdown_without_language_model(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fallback-only mode has nothing to close."""
    monkeypatch.setattr(app.state, "language_model", None, raising=False)
    await shutdown()
