"""Tests for the SQLite run-history index."""

from pathlib import Path

from conductor.storage.database import Database


def _run(task_id: str, started_at: str, **extra: object) -> dict[str, object]:
    return {
        "task_id": task_id,
        "body": "Fix the bug in src/app.py",
        "status": "completed",
        "audit_path": f"/tmp/logs/{task_id}.jsonl",
        "started_at": started_at,
        **extra,
    }


def test_ensure_tables(tmp_path: Path) -> None:
    db = Database(data_dir=tmp_path / "conductor")
    db.ensure_tables()
    assert db.db_path.exists()


def test_wal_mode(tmp_path: Path) -> None:
    db = Database(data_dir=tmp_path / "conductor")
    db.ensure_tables()
    with db.connect() as conn:
        result = conn.execute("PRAGMA journal_mode").fetchone()
        assert result[0] == "wal"


def test_record_run(tmp_path: Path) -> None:
    db = Database(data_dir=tmp_path / "conductor")
    db.ensure_tables()
    db.record_run(_run("task-1", "2024-01-01T00:00:00.000Z", verdict="pass", routed_to="dev"))
    rows = db.execute("SELECT * FROM runs WHERE task_id = ?", ("task-1",))
    assert len(rows) == 1
    assert rows[0]["verdict"] == "pass"
    assert rows[0]["routed_to"] == "dev"


def test_record_run_upserts(tmp_path: Path) -> None:
    db = Database(data_dir=tmp_path / "conductor")
    db.ensure_tables()
    db.record_run(_run("task-1", "2024-01-01T00:00:00.000Z", status="escalated"))
    db.record_run(_run("task-1", "2024-01-01T00:00:00.000Z", verdict="fail", status="failed"))
    rows = db.execute("SELECT * FROM runs")
    assert len(rows) == 1
    assert rows[0]["status"] == "failed"
    assert rows[0]["verdict"] == "fail"


def test_body_preview_truncated(tmp_path: Path) -> None:
    db = Database(data_dir=tmp_path / "conductor")
    db.ensure_tables()
    db.record_run(_run("task-1", "2024-01-01T00:00:00.000Z", body="x" * 500))
    (row,) = db.recent_runs()
    assert len(row["body"]) == 200


def test_recent_runs_newest_first(tmp_path: Path) -> None:
    db = Database(data_dir=tmp_path / "conductor")
    db.ensure_tables()
    for i in range(3):
        db.record_run(_run(f"task-{i}", f"2024-01-0{i + 1}T00:00:00.000Z"))
    assert [r["task_id"] for r in db.recent_runs()] == ["task-2", "task-1", "task-0"]
    assert [r["task_id"] for r in db.recent_runs(limit=1, offset=1)] == ["task-1"]


def test_record_run_upsert_refreshes_routing(tmp_path: Path) -> None:
    db = Database(data_dir=tmp_path / "conductor")
    db.ensure_tables()
    db.record_run(_run("task-1", "2024-01-01T00:00:00.000Z", status="escalated"))
    db.record_run(
        _run(
            "task-1",
            "2024-01-02T00:00:00.000Z",
            category="technical_explicit",
            routed_to="dev",
            spec_id="spec-1",
            verdict="pass",
        )
    )
    (row,) = db.recent_runs()
    assert row["category"] == "technical_explicit"
    assert row["routed_to"] == "dev"
    assert row["spec_id"] == "spec-1"
    assert row["started_at"] == "2024-01-02T00:00:00.000Z"


def test_schema_has_only_runs_table(tmp_path: Path) -> None:
    db = Database(data_dir=tmp_path / "conductor")
    db.ensure_tables()
    rows = db.execute("SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'")
    assert [r["name"] for r in rows] == ["runs"]
