"""Route tests for the harvest and enrichment API with the service overridden."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from tenancy_watch.api.v1.endpoints.harvest import get_harvest_job_service
from tenancy_watch.core.exceptions import JobConflictError, JobNotFoundError, ValidationError
from tenancy_watch.main import app


@pytest.fixture
def service():
    service = MagicMock()
    service.start_harvest = AsyncMock(
        return_value={
            "job_id": "6f1c2a9e-0000-4000-8000-000000000001",
            "source_type": "disputes",
            "workflow_id": "harvest-disputes-6f1c2a9e-0000-4000-8000-000000000001",
            "status": "running",
            "message": "disputes harvest started",
        }
    )
    service.get_status = AsyncMock(return_value={"source_type": "disputes", "job": None, "pending_enrichment": 4})
    service.cancel_harvest = AsyncMock()
    service.trigger_enrichment = AsyncMock(
        return_value={"source_type": "disputes", "processed": 0, "error": "No AI API key configured"}
    )
    return service


@pytest.fixture
def client(service):
    app.dependency_overrides[get_harvest_job_service] = lambda: service
    # No context manager: the lifespan would try to reach the database
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHarvestRoutes:

    def test_start(self, client, service):
        response = client.post("/api/v1/harvest/disputes", json={"start_page": 3})

        assert response.status_code == 202
        assert response.json()["status"] == "running"
        service.start_harvest.assert_awaited_once_with("disputes", start_page=3)

    def test_start_without_body(self, client, service):
        response = client.post("/api/v1/harvest/disputes")

        assert response.status_code == 202
        service.start_harvest.assert_awaited_once_with("disputes", start_page=1)

    def test_start_conflict(self, client, service):
        service.start_harvest.side_effect = JobConflictError("A disputes harvest is already running")

        response = client.post("/api/v1/harvest/disputes")

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "JobConflict"

    def test_unknown_source(self, client, service):
        service.get_status.side_effect = ValidationError("Unknown source type: 'tribunals'")

        response = client.get("/api/v1/harvest/tribunals")

        assert response.status_code == 400

    def test_status(self, client):
        response = client.get("/api/v1/harvest/disputes")

        assert response.status_code == 200
        assert response.json() == {"source_type": "disputes", "job": None, "pending_enrichment": 4}

    def test_cancel_without_running_job(self, client, service):
        service.cancel_harvest.side_effect = JobNotFoundError("No running disputes harvest to cancel")

        response = client.delete("/api/v1/harvest/disputes")

        assert response.status_code == 404

    def test_unexpected_error_is_hidden(self, client, service):
        service.get_status.side_effect = RuntimeError("password=secret")

        response = client.get("/api/v1/harvest/disputes")

        assert response.status_code == 500
        assert "secret" not in response.text


class TestEnrichmentRoute:

    def test_trigger_without_credentials(self, client, service):
        response = client.post("/api/v1/enrichment/batch", json={"source_type": "disputes", "limit": 10})

        assert response.status_code == 202
        assert response.json()["error"] == "No AI API key configured"
        service.trigger_enrichment.assert_awaited_once_with("disputes", limit=10, drain=False)

    def test_limit_must_be_positive(self, client):
        response = client.post("/api/v1/enrichment/batch", json={"limit": 0})

        assert response.status_code == 422


class TestHealth:

    def test_degraded_without_schema(self, client, monkeypatch):
        from tenancy_watch import main

        monkeypatch.setattr(
            main.db_client,
            "health_check",
            AsyncMock(return_value={"status": "degraded", "connected": True, "schema": "missing"}),
        )

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["schema_state"] == "missing"
