"""FastAPI server for programmatic pipeline access."""

from __future__ import annotations

import logging
import sqlite3
import time
from typing import Any

import click
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from conductor import __version__
from conductor.config import Settings, load_settings
from conductor.core.audit import TASK_ID_PATTERN, AuditLog
from conductor.core.errors import EscalationError
from conductor.core.manifests import DEFAULT_REGISTRY
from conductor.core.runtime import generate_task_id
from conductor.core.scope import resolve_scope
from conductor.core.types import Task, TaskType
from conductor.engine.orchestrator import Orchestrator
from conductor.storage.database import Database

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Conductor API",
    version=__version__,
    description="Deterministic control plane for permission-scoped agent pipelines",
)

_start_time = time.monotonic()
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


class RunRequest(BaseModel):
    body: str = Field(min_length=1)
    type: TaskType | None = None
    context: list[str] = Field(default_factory=list)
    task_id: str | None = Field(default=None, pattern=TASK_ID_PATTERN)


@app.get("/api/health")
async def health() -> dict[str, Any]:
    """Health check."""
    uptime = time.monotonic() - _start_time
    return {"status": "ok", "version": __version__, "uptime_seconds": round(uptime, 1)}


@app.post("/api/run")
def run(request: RunRequest, settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Run one task through the pipeline and return the aggregate result."""
    task = Task(
        task_id=request.task_id or generate_task_id(),
        body=request.body,
        type=request.type,
        context_registry=tuple(request.context),
    )
    orch = Orchestrator(settings=settings, db=Database(settings.home))
    audit_path = str(orch.audit.logs_dir / f"{task.task_id}.jsonl")

    try:
        result = orch.run(task)
    except EscalationError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "taskId": task.task_id,
                "status": e.status,
                "error": str(e),
                "context": e.context,
                "auditPath": audit_path,
            },
        ) from e
    except Exception as e:
        logger.exception("run %s failed", task.task_id)
        raise HTTPException(
            status_code=500,
            detail={
                "taskId": task.task_id,
                "status": "escalated",
                "error": str(e),
                "auditPath": audit_path,
            },
        ) from e

    return {**result.to_dict(), "auditPath": audit_path}


@app.get("/api/audit/{task_id}")
async def audit(task_id: str, settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Replay a task's audit stream."""
    log = AuditLog(settings.project_root)
    try:
        events = log.replay(task_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if not events:
        raise HTTPException(status_code=404, detail=f"No audit stream for {task_id}")
    return {"taskId": task_id, "events": [e.to_dict() for e in events], "count": len(events)}


@app.get("/api/history")
async def history(
    limit: int = 20, offset: int = 0, settings: Settings = Depends(get_settings)
) -> dict[str, Any]:
    """Recent pipeline runs, newest first."""
    try:
        runs = Database(settings.home).recent_runs(limit, offset)
    except sqlite3.Error:
        runs = []
    return {"runs": runs, "count": len(runs), "limit": limit, "offset": offset}


@app.get("/api/manifests")
async def manifests() -> dict[str, Any]:
    """Registered manifests with their resolved scopes."""
    items = [
        {"manifest": m.to_dict(), "scope": resolve_scope(m).to_dict()} for m in DEFAULT_REGISTRY
    ]
    return {"manifests": items, "count": len(items)}


@click.command()
@click.option("--port", default=3850, help="Port to listen on")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
def main(port: int, host: str) -> None:
    """Start the Conductor API server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)
