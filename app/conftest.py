import httpx
import pytest
from fastapi.testclient import TestClient

from app.app_proxy.forwarder import build_http_client
from app.app_proxy.route import get_http_client


@pytest.fixture
def server_app():
    """The FastAPI app with dependency overrides cleared after each test."""
    from app.server import app

    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def proxy_client(server_app):
    """
    Build a TestClient whose outbound fetches are answered by ``handler``
    instead of the network.
    """

    def _create(handler) -> TestClient:
        upstream = build_http_client(transport=httpx.MockTransport(handler))
        server_app.dependency_overrides[get_http_client] = lambda: upstream
        return TestClient(server_app)

    return _create
