import pytest
from fastapi.testclient import TestClient

from backend.auth import issue_token
from backend.db import reset_engine
from backend.main import create_app
from backend.settings import reset_settings


@pytest.fixture()
def client(tmp_path, monkeypatch):
    db_path = tmp_path / "calendar.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("BACKEND_SESSION_SECRET", "test-secret")
    monkeypatch.setenv("CALENDAR_TIMEZONE", "UTC")
    monkeypatch.setenv("TOKEN_TTL_SECONDS", "3600")
    reset_settings()
    reset_engine()
    with TestClient(create_app()) as test_client:
        yield test_client
    reset_engine()
    reset_settings()


@pytest.fixture()
def auth_headers(client):
    def _headers(user_id="alice"):
        return {"Authorization": f"Bearer {issue_token(user_id)}"}

    return _headers


@pytest.fixture()
def make_project(client, auth_headers):
    def _make(owner="alice", name="Thesis", members=()):
        response = client.post("/api/projects", json={"name": name}, headers=auth_headers(owner))
        assert response.status_code == 201
        project = response.json()["project"]
        for member in members:
            joined = client.post(
                "/api/projects/join",
                json={"joinCode": project["joinCode"]},
                headers=auth_headers(member),
            )
            assert joined.status_code == 200
        return project

    return _make
