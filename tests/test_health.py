"""Health endpoint tests."""

from fastapi.testclient import TestClient

from collector.app import create_app
from collector.config import Settings


def test_liveness_returns_200(client: TestClient) -> None:
    """Liveness endpoint returns 200 OK."""
    response = client.get("/api/v1/health/live")
    assert response.status_code == 200


def test_liveness_returns_status(client: TestClient) -> None:
    """Liveness endpoint returns alive status."""
    response = client.get("/api/v1/health/live")
    data = response.json()
    assert data["status"] == "alive"


def test_readiness_reports_database_and_backend(client: TestClient) -> None:
    """Readiness checks the database and names the fallback backend by default."""
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["search_backend"] == "fallback"
    assert data["checks"][0]["name"] == "db::memory:"
    assert data["checks"][0]["status"] == "ok"


def test_readiness_reports_managed_backend_when_enabled() -> None:
    """The managed backend is reported when the flag is on outside test modes."""
    settings = Settings(search_backend_enabled=True)
    with TestClient(create_app(settings)) as client:
        data = client.get("/api/v1/health/ready").json()
    assert data["search_backend"] == "managed"


def test_health_skips_api_key() -> None:
    """Health probes stay reachable when an API key is configured."""
    settings = Settings(key="secret")
    with TestClient(create_app(settings)) as client:
        assert client.get("/api/v1/health/live").status_code == 200
        assert client.get("/api/v1/search?q=miku").status_code == 401
