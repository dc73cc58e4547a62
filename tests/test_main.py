import pytest
from fastapi.testclient import TestClient

from app.main import app


@pytest.fixture(name="bare_client")
def bare_client_fixture():
    """Client that does not run the lifespan."""
    return TestClient(app)


class TestAppConfiguration:
    """Test FastAPI app configuration."""

    def test_app_title(self):
        assert app.title == "Missionboard API"

    def test_app_description(self):
        assert app.description == "Mission marketplace between advertisers and missionaries"

    def test_app_has_lifespan(self):
        assert app.router.lifespan_context is not None

    def test_cors_middleware_configured(self):
        assert any(m.cls.__name__ == "CORSMiddleware" for m in app.user_middleware)


class TestRoutes:
    def test_health(self, bare_client):
        response = bare_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_routers_are_mounted(self):
        paths = {route.path for route in app.routes}
        for path in (
            "/auth/token",
            "/missions/",
            "/submissions/",
            "/feed/posts",
            "/threads/",
            "/notifications/",
            "/internal/admin/missions",
        ):
            assert path in paths
