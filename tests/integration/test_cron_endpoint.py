"""Integration tests for the task generation cron endpoint."""

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from src.core.config import settings
from src.main import app
from src.models.service_models import RunLog


ENDPOINT = "/api/cron/generate-daily-tasks"
SECRET = "cron-test-secret"
AUTH = {"Authorization": f"Bearer {SECRET}"}


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """Client without lifespan, for request-level checks."""
    monkeypatch.setattr(settings, "cron_secret", SECRET)
    return TestClient(app)


@pytest.fixture
def live_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """Client running the full lifespan against an empty SQLite file."""
    monkeypatch.setattr(settings, "cron_secret", SECRET)
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "taskgen.db"))
    monkeypatch.setattr(settings, "enable_scheduler", False)

    with TestClient(app) as test_client:
        yield test_client


@pytest.mark.integration
class TestAuthentication:
    """Requests must carry the configured bearer secret."""

    def test_get_not_allowed(self, client: TestClient) -> None:
        assert client.get(ENDPOINT, headers=AUTH).status_code == 405

    def test_missing_header(self, client: TestClient) -> None:
        response = client.post(ENDPOINT)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_wrong_secret(self, client: TestClient) -> None:
        assert client.post(ENDPOINT, headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_wrong_scheme(self, client: TestClient) -> None:
        assert client.post(ENDPOINT, headers={"Authorization": f"Basic {SECRET}"}).status_code == 401

    def test_unconfigured_secret_rejects_everything(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "cron_secret", None)

        assert client.post(ENDPOINT, headers={"Authorization": "Bearer "}).status_code == 401
        assert client.post(ENDPOINT, headers={"Authorization": "Bearer None"}).status_code == 401


@pytest.mark.integration
class TestGeneration:
    """Authorised requests run generation and report the run log."""

    def test_returns_run_log(self, client: TestClient) -> None:
        log = RunLog(
            run_date="2024-03-15",
            timestamp=datetime(2024, 3, 15, 2, 0, tzinfo=UTC),
            daily_tasks_created=6,
            triggered_tasks_created=1,
            errors=["instantiation [template=4 site=2] (timeout): database is locked"],
        )

        with patch("src.interface.cron_router.run_generation", AsyncMock(return_value=log)):
            response = client.post(ENDPOINT, headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["runDate"] == "2024-03-15"
        assert body["dailyTasksCreated"] == 6
        assert body["triggeredTasksCreated"] == 1
        assert body["totalTasksCreated"] == 7
        assert body["errors"] == ["instantiation [template=4 site=2] (timeout): database is locked"]

    def test_top_level_failure_returns_500(self, client: TestClient) -> None:
        with patch("src.interface.cron_router.run_generation", AsyncMock(side_effect=RuntimeError("store offline"))):
            response = client.post(ENDPOINT, headers=AUTH)

        assert response.status_code == 500
        assert response.json() == {"error": "store offline"}

    def test_full_run_against_empty_store(self, live_client: TestClient) -> None:
        response = live_client.post(ENDPOINT, headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert set(body) >= {
            "runDate",
            "dailyTasksCreated",
            "weeklyTasksCreated",
            "monthlyTasksCreated",
            "triggeredTasksCreated",
            "errors",
        }
        assert body["totalTasksCreated"] == 0
        assert body["errors"] == []
