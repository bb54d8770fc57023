"""
Tests for REST API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from switchlink import __version__
from switchlink.bootstrap.app import SwitchLinkApp
from switchlink.bootstrap.config import EngineConfig, StorageConfig, SwitchLinkConfig
from switchlink.core.models import SwitchConfig
from switchlink.deployment.api import create_fastapi_app


def _config():
    return SwitchLinkConfig(
        storage=StorageConfig(backend="memory"),
        engine=EngineConfig(bounce_delay_ms=10, restore_delay_ms=10),
        switches=[
            SwitchConfig(name="A"),
            SwitchConfig(name="B"),
            SwitchConfig(name="C", depends_on=["A", "B"]),
        ],
    )


@pytest.fixture
def client():
    app = SwitchLinkApp(config=_config())
    with TestClient(create_fastapi_app(app)) as test_client:
        yield test_client


class TestHealth:
    """Tests for /health."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "running"
        assert data["version"] == __version__
        assert data["switch_count"] == 3


class TestSwitches:
    """Tests for /switches."""

    def test_list_in_registration_order(self, client):
        response = client.get("/switches")
        assert response.status_code == 200
        assert [s["name"] for s in response.json()] == ["A", "B", "C"]

    def test_get_switch(self, client):
        data = client.get("/switches/C").json()
        assert data["state"] is False
        assert data["service"]["type"] == "Switch"
        assert data["service"]["depends_on"] == ["A", "B"]
        assert data["information"]["manufacturer"] == "SwitchLink"

    def test_unknown_switch_404(self, client):
        response = client.get("/switches/Nope")
        assert response.status_code == 404
        assert "Nope" in response.json()["detail"]

    def test_set_cascades(self, client):
        first = client.put("/switches/A", json={"on": True})
        assert first.status_code == 200
        assert first.json()["outcome"] == "transitioned"
        assert first.json()["cascade"]["updated"] == []

        second = client.put("/switches/B", json={"on": True})
        assert second.json()["cascade"]["updated"] == ["C"]
        assert client.get("/switches/C").json()["state"] is True

    def test_set_reassertion_bounces(self, client):
        client.put("/switches/A", json={"on": True})
        response = client.put("/switches/A", json={"on": True})
        assert response.status_code == 200
        assert response.json()["outcome"] == "bounced"

    def test_set_requires_body(self, client):
        response = client.put("/switches/A", json={})
        assert response.status_code == 422

    def test_set_unknown_404(self, client):
        response = client.put("/switches/Nope", json={"on": True})
        assert response.status_code == 404

    def test_history(self, client):
        client.put("/switches/A", json={"on": True})

        response = client.get("/switches/A/history")
        assert response.status_code == 200
        types = [e["trigger_type"] for e in response.json()]
        assert types == ["transition", "request"]

    def test_history_limit(self, client):
        client.put("/switches/A", json={"on": True})
        response = client.get("/switches/A/history", params={"limit": 1})
        assert len(response.json()) == 1


class TestStoreFailure:
    """Tests for persistence failures surfacing over HTTP."""

    def test_write_failure_503(self, failing_store):
        failing_store.fail_writes.add("A")
        app = SwitchLinkApp(config=_config(), store=failing_store)

        with TestClient(create_fastapi_app(app)) as client:
            response = client.put("/switches/A", json={"on": True})
            assert response.status_code == 503
            assert response.json()["detail"]["outcome"] == "failed"
            assert client.get("/switches/A").json()["state"] is False
