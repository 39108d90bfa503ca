"""
Tests for health check endpoints

Tests both the basic check and the list store reachability check.
"""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from helpdesk.main import app
from helpdesk.routes.health import DependencyStatus, determine_overall_status

from conftest import FailingListStore

client = TestClient(app)


class PartiallyFailingStore:
    """Tickets readable, categories not"""

    def __init__(self, store):
        self.store = store

    async def list_items(self, list_name, query):
        if list_name == "Categories":
            return await FailingListStore().list_items(list_name, query)
        return await self.store.list_items(list_name, query)


class TestBasicHealthCheck:
    """Test basic health check endpoint"""

    def test_basic_health_returns_200(self):
        """Basic health check should always return 200"""
        response = client.get("/api/health")
        assert response.status_code == 200

    def test_basic_health_response_structure(self):
        """Basic health check should have correct response structure"""
        data = client.get("/api/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert "timestamp" in data
        assert data["uptime_seconds"] >= 0

    def test_basic_health_does_not_touch_store(self):
        """Basic health check should not build a list store"""
        with patch("helpdesk.routes.health.get_list_store") as get_store:
            client.get("/api/health")
            get_store.assert_not_called()


class TestDependencyHealthCheck:
    """Test dependency health check endpoint"""

    def test_all_lists_healthy(self, seeded_store):
        with patch("helpdesk.routes.health.get_list_store", return_value=seeded_store):
            data = client.get("/api/health/dependencies").json()

        assert data["overall_status"] == "healthy"
        assert set(data["dependencies"]) == {"Tickets", "Categories"}
        for dep in data["dependencies"].values():
            assert dep["status"] == "healthy"
            assert dep["latency_ms"] is not None

    def test_tickets_unreachable_is_unhealthy(self):
        with patch("helpdesk.routes.health.get_list_store", return_value=FailingListStore()):
            data = client.get("/api/health/dependencies").json()

        assert data["overall_status"] == "unhealthy"
        assert data["dependencies"]["Tickets"]["error_message"] == "Service Unavailable"

    def test_categories_unreachable_is_degraded(self, seeded_store):
        store = PartiallyFailingStore(seeded_store)
        with patch("helpdesk.routes.health.get_list_store", return_value=store):
            data = client.get("/api/health/dependencies").json()

        assert data["overall_status"] == "degraded"
        assert data["dependencies"]["Tickets"]["status"] == "healthy"
        assert data["dependencies"]["Categories"]["status"] == "unhealthy"


@pytest.mark.parametrize("statuses,expected", [
    ({"Tickets": "healthy", "Categories": "healthy"}, "healthy"),
    ({"Tickets": "healthy", "Categories": "unhealthy"}, "degraded"),
    ({"Tickets": "unhealthy", "Categories": "healthy"}, "unhealthy"),
])
def test_determine_overall_status(statuses, expected):
    dependencies = {
        name: DependencyStatus(name=name, status=value) for name, value in statuses.items()
    }
    assert determine_overall_status(dependencies) == expected


def test_root_endpoint():
    """Root endpoint should report the service and version"""
    data = client.get("/").json()
    assert data["message"] == "Helpdesk Ticket Service"
    assert data["version"] == "1.0.0"
