"""
Tests for jobs router.

The router talks to a real SchedulerCoreService over a temporary database;
the service singleton is installed directly so the lifespan is not needed.
"""

import os
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from src.api._scheduler_state import set_scheduler_service
from src.scheduler import SchedulerConfig, SchedulerCoreService
from src.scheduler.entities import to_iso, utcnow


JOB_DOCUMENT = {
    "name": "nightly-report",
    "handler": "jobs/nightly.js",
    "engine": "javascript",
    "expression": "0 0 2 * * ?",
    "parameters": [
        {"name": "limit", "type": "number", "defaultValue": "10"},
    ],
}


@pytest.fixture
def service(tmp_path):
    svc = SchedulerCoreService.create(
        tmp_path / "scheduler.db",
        SchedulerConfig(),
        principal_provider=lambda: "api-user",
    )
    set_scheduler_service(svc)
    yield svc
    set_scheduler_service(None)


@pytest.fixture
def client(service):
    """Create test client for API."""
    from src.api.main import app
    return TestClient(app)


class TestHealth:

    def test_health_is_public(self, client):
        os.environ["API_AUTH_ENABLED"] = "true"
        os.environ["API_KEY"] = "secret"

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestJobEndpoints:

    def test_create_and_get(self, client):
        response = client.post("/jobs", json=JOB_DOCUMENT)

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "nightly-report"
        assert data["group"] == "dirigible-defined"
        assert data["created_by"] == "api-user"
        assert data["parameters"][0]["default_value"] == "10"

        response = client.get("/jobs/nightly-report")
        assert response.status_code == 200
        assert response.json()["schedule_expression"] == "0 0 2 * * ?"

    def test_update_reconciles_parameters(self, client):
        client.post("/jobs", json=JOB_DOCUMENT)

        document = dict(JOB_DOCUMENT, parameters=[{"name": "mode", "defaultValue": "full"}])
        response = client.post("/jobs", json=document)

        assert [p["name"] for p in response.json()["parameters"]] == ["mode"]

    def test_invalid_document(self, client):
        response = client.post("/jobs", json={"handler": "no-name.js"})

        assert response.status_code == 422

    def test_list(self, client):
        client.post("/jobs", json=JOB_DOCUMENT)
        client.post("/jobs", json=dict(JOB_DOCUMENT, name="another"))

        data = client.get("/jobs").json()

        assert data["total"] == 2
        assert [job["name"] for job in data["jobs"]] == ["another", "nightly-report"]

    def test_get_missing(self, client):
        response = client.get("/jobs/ghost")

        assert response.status_code == 404
        assert "ghost" in response.json()["detail"]

    def test_delete(self, client):
        client.post("/jobs", json=JOB_DOCUMENT)

        assert client.delete("/jobs/nightly-report").json()["success"] is True
        assert client.get("/jobs/nightly-report").status_code == 404
        assert client.delete("/jobs/nightly-report").status_code == 404


class TestLogEndpoints:

    def test_logs_newest_first(self, client, service):
        client.post("/jobs", json=JOB_DOCUMENT)
        trigger = service.job_triggered("nightly-report", "jobs/nightly.js")
        failed = service.job_failed("nightly-report", "jobs/nightly.js", trigger.id, trigger.triggered_at, "boom")

        data = client.get("/jobs/nightly-report/logs").json()

        assert data["total"] == 2
        first = data["logs"][0]
        assert first["id"] == failed.id
        assert first["status"] == "FAILED"
        assert first["triggered_id"] == trigger.id
        assert client.get("/jobs/nightly-report").json()["status"] == "FAILED"

    def test_logs_of_unknown_job_empty(self, client):
        data = client.get("/jobs/ghost/logs").json()

        assert data == {"logs": [], "total": 0}

    def test_clear_logs(self, client, service):
        service.job_logged("nightly-report", None, "one")
        service.job_logged("nightly-report", None, "two")

        assert client.delete("/jobs/nightly-report/logs").json() == {"deleted": 2}
        assert client.get("/jobs/nightly-report/logs").json()["total"] == 0

    def test_sweep(self, client, service):
        service.job_finished("nightly-report", None, None, to_iso(utcnow() - timedelta(days=30)))
        service.job_logged("nightly-report", None, "recent")

        assert client.post("/jobs/logs/sweep").json() == {"deleted": 1}


class TestWatcherEndpoints:

    def test_add_list_remove(self, client):
        response = client.post("/jobs/nightly-report/emails", json={"email": "dev@example.com"})

        assert response.status_code == 201
        email_id = response.json()["id"]

        data = client.get("/jobs/nightly-report/emails").json()
        assert data["total"] == 1
        assert data["emails"][0]["email"] == "dev@example.com"

        assert client.delete(f"/jobs/emails/{email_id}").status_code == 200
        assert client.get("/jobs/nightly-report/emails").json()["total"] == 0
        assert client.delete(f"/jobs/emails/{email_id}").status_code == 404

    def test_invalid_email(self, client):
        response = client.post("/jobs/nightly-report/emails", json={"email": "not-an-address"})

        assert response.status_code == 422
        assert "not-an-address" in response.json()["detail"]
        assert client.get("/jobs/nightly-report/emails").json()["total"] == 0


class TestAuthentication:

    def test_missing_key_rejected(self, client):
        os.environ["API_AUTH_ENABLED"] = "true"
        os.environ["API_KEY"] = "secret"

        response = client.get("/jobs")

        assert response.status_code == 401

    def test_wrong_key_rejected(self, client):
        os.environ["API_AUTH_ENABLED"] = "true"
        os.environ["API_KEY"] = "secret"

        response = client.get("/jobs", headers={"X-API-Key": "nope"})

        assert response.status_code == 401

    def test_valid_key_accepted(self, client):
        os.environ["API_AUTH_ENABLED"] = "true"
        os.environ["API_KEY"] = "secret"

        response = client.get("/jobs", headers={"X-API-Key": "secret"})

        assert response.status_code == 200
