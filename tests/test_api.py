"""Tests for the FastAPI server."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from conductor.api.server import app, get_settings
from conductor.config import Settings


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_settings(settings: Settings) -> Iterator[Settings]:
    app.dependency_overrides[get_settings] = lambda: settings
    yield settings
    app.dependency_overrides.clear()


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.anyio
async def test_health() -> None:
    async with _client() as client:
        response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert "uptime_seconds" in data


@pytest.mark.anyio
async def test_run_requires_body() -> None:
    async with _client() as client:
        response = await client.post("/api/run", json={})
    assert response.status_code == 422


@pytest.mark.anyio
@pytest.mark.parametrize("task_id", ["bad/id", "../escape", ""])
async def test_run_rejects_unsafe_task_id(isolated_settings: Settings, task_id: str) -> None:
    async with _client() as client:
        response = await client.post("/api/run", json={"body": "Make it better", "task_id": task_id})
    assert response.status_code == 422
    assert not (isolated_settings.project_root / "logs").exists()


@pytest.mark.anyio
async def test_run_technical() -> None:
    async with _client() as client:
        response = await client.post(
            "/api/run",
            json={"body": "Refactor the login function in src/auth/login.ts", "task_id": "task-api"},
        )
    assert response.status_code == 200
    data = response.json()
    assert data["taskId"] == "task-api"
    assert data["status"] == "completed"
    assert data["classification"]["routedTo"] == "dev"
    assert data["validation"]["verdict"] == "pass"
    assert data["auditPath"].endswith("task-api.jsonl")


@pytest.mark.anyio
async def test_run_with_type_hint() -> None:
    async with _client() as client:
        response = await client.post(
            "/api/run", json={"body": "Refactor src/app.py", "type": "ambiguous"}
        )
    assert response.status_code == 200
    assert response.json()["classification"]["category"] == "ambiguous"


@pytest.mark.anyio
async def test_run_escalation(isolated_settings: Settings, tmp_path: Path) -> None:
    isolated_settings.contracts_root = tmp_path / "missing"
    async with _client() as client:
        response = await client.post("/api/run", json={"body": "Make it better"})
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["status"] == "escalated"
    assert detail["context"]["kind"] == "system_prompt_missing"


@pytest.mark.anyio
async def test_audit_replay() -> None:
    async with _client() as client:
        await client.post("/api/run", json={"body": "Make it better", "task_id": "task-a"})
        response = await client.get("/api/audit/task-a")
    assert response.status_code == 200
    data = response.json()
    assert data["events"][0]["eventType"] == "execution_start"
    assert data["events"][-1]["eventType"] == "execution_end"
    assert data["count"] == len(data["events"])


@pytest.mark.anyio
async def test_audit_missing() -> None:
    async with _client() as client:
        response = await client.get("/api/audit/task-none")
    assert response.status_code == 404


@pytest.mark.anyio
async def test_audit_invalid_id() -> None:
    async with _client() as client:
        response = await client.get("/api/audit/bad..%20id")
    assert response.status_code == 400


@pytest.mark.anyio
async def test_history() -> None:
    async with _client() as client:
        empty = await client.get("/api/history")
        await client.post("/api/run", json={"body": "Make it better", "task_id": "task-h"})
        response = await client.get("/api/history", params={"limit": 5})
    assert empty.json()["runs"] == []
    data = response.json()
    assert data["count"] == 1
    assert data["runs"][0]["task_id"] == "task-h"
    assert data["limit"] == 5


@pytest.mark.anyio
async def test_manifests() -> None:
    async with _client() as client:
        response = await client.get("/api/manifests")
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 4
    dev = next(m for m in data["manifests"] if m["manifest"]["role"] == "dev")
    assert dev["scope"]["filesystemPolicy"] == "workspace"
