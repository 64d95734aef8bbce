"""
Tests for the operational API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from fitness_api.deps import check_database, check_redis, get_outbox_stores
from fitness_api.main import app
from fitness_events.contracts import OutboxStats


class StaticStatsStore:
    def __init__(self, name: str, pending: int = 0, processed: int = 0, poisoned: int = 0):
        self.name = name
        self._stats = OutboxStats(backend=name, pending=pending, processed=processed, poisoned=poisoned)

    async def stats(self) -> OutboxStats:
        return self._stats


class UnreachableStore:
    name = "documents"

    async def stats(self) -> OutboxStats:
        raise ConnectionError("Connection refused")


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def override_health(database_ok: bool, redis_ok: bool) -> None:
    async def database():
        return database_ok

    async def redis():
        return redis_ok

    app.dependency_overrides[check_database] = database
    app.dependency_overrides[check_redis] = redis


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Fitness Outbox API"


class TestHealth:
    def test_healthy(self, client):
        override_health(True, True)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "checks": {"database": "ok", "redis": "ok"}}

    def test_redis_down(self, client):
        override_health(True, False)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
        assert response.json()["checks"]["redis"] == "unavailable"

    def test_database_down(self, client):
        override_health(False, True)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["checks"] == {"database": "unavailable", "redis": "ok"}


class TestOutboxStats:
    def test_counts_per_backend(self, client):
        app.dependency_overrides[get_outbox_stores] = lambda: [
            StaticStatsStore("relational", pending=2, processed=10, poisoned=1),
            StaticStatsStore("documents", processed=4),
        ]

        response = client.get("/outbox/stats")

        assert response.status_code == 200
        assert response.json()["backends"] == [
            {"backend": "relational", "pending": 2, "processed": 10, "poisoned": 1},
            {"backend": "documents", "pending": 0, "processed": 4, "poisoned": 0},
        ]

    def test_unreachable_backend_reported(self, client):
        """Test one failing backend does not hide the others."""
        app.dependency_overrides[get_outbox_stores] = lambda: [
            StaticStatsStore("relational", pending=1),
            UnreachableStore(),
        ]

        response = client.get("/outbox/stats")

        assert response.status_code == 200
        relational, documents = response.json()["backends"]
        assert relational["pending"] == 1
        assert documents == {"backend": "documents", "error": "Connection refused"}
