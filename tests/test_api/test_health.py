from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_service_factory, get_staleness_monitor
from api.main import app


@pytest.fixture
def mock_monitor():
    return MagicMock()


@pytest.fixture
def mock_factory():
    factory = MagicMock()
    factory.check_connections = AsyncMock(return_value={"database": True, "cache": True})
    return factory


@pytest.fixture
def client(mock_monitor, mock_factory):
    app.dependency_overrides[get_staleness_monitor] = lambda: mock_monitor
    app.dependency_overrides[get_service_factory] = lambda: mock_factory
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def test_health_all_fresh(client, mock_monitor):
    mock_monitor.status.return_value = {
        "BTC-USD": {"last_update": datetime(2025, 11, 5, 10, 0, tzinfo=UTC), "stale": False},
    }

    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["pairs"]["BTC-USD"]["stale"] is False
    assert data["services"] == {"database": True, "cache": True}


def test_health_degraded_when_any_pair_stale(client, mock_monitor):
    mock_monitor.status.return_value = {
        "BTC-USD": {"last_update": datetime(2025, 11, 5, 10, 0, tzinfo=UTC), "stale": False},
        "ETH-USD": {"last_update": None, "stale": True},
    }

    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["pairs"]["ETH-USD"]["last_update"] is None


def test_health_degraded_when_cache_unreachable(client, mock_monitor, mock_factory):
    mock_monitor.status.return_value = {
        "BTC-USD": {"last_update": datetime(2025, 11, 5, 10, 0, tzinfo=UTC), "stale": False},
    }
    mock_factory.check_connections.return_value = {"database": True, "cache": False}

    response = client.get("/api/health")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["services"]["cache"] is False
