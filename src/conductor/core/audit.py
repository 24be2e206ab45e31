"""Append-only audit log.

One JSON Lines file per task under ``<root>/logs/<task_id>.jsonl``. Each
``append`` writes exactly one complete, independently parseable line. Write
faults are reported through the module logger and never reach the caller:
an audit failure must not abort task execution.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from conductor.core.types import AuditEvent

logger = logging.getLogger(__name__)

LOGS_DIR = "logs"

TASK_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"

_SAFE_TASK_ID = re.compile(TASK_ID_PATTERN)


def is_safe_task_id(task_id: str) -> bool:
    """True when ``task_id`` can name a stream file inside the logs directory."""
    return bool(_SAFE_TASK_ID.fullmatch(task_id))


def utc_now() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AuditLog:
    """Single-writer, sequential-append audit store."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root or Path.cwd()
        self.logs_dir = self.root / LOGS_DIR

    def path_for(self, task_id: str) -> Path:
        """Return the stream path for ``task_id``.

        Raises:
            ValueError: If the task id would escape the logs directory
        """
        if not is_safe_task_id(task_id):
            raise ValueError(f"Invalid task id for audit stream: {task_id!r}")
        return self.logs_dir / f"{task_id}.jsonl"

    def append(self, event: AuditEvent) -> None:
        """Append one event. Stamps the timestamp when the caller left it empty."""
        record = event.to_dict()
        if not record["timestamp"]:
            record["timestamp"] = utc_now()

        try:
            path = self.path_for(event.task_id)
            line = json.dumps(record, default=str, ensure_ascii=False) + "\n"
            # Created lazily on first write for a task
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as fh:
                fh.write(line)
                fh.flush()
        except (OSError, ValueError, TypeError) as e:
            logger.error(
                "audit write failed for task %s (%s): %s", event.task_id, event.event_type, e
            )

    def log(
        self,
        task_id: str,
        event_type: str,
        data: Mapping[str, Any] | None = None,
        agent_id: str | None = None,
    ) -> None:
        """Build and append an event stamped with the current time."""
        self.append(
            AuditEvent(
                task_id=task_id,
                event_type=event_type,
                data=dict(data or {}),
                agent_id=agent_id,
                timestamp=utc_now(),
            )
        )

    def replay(self, task_id: str) -> list[AuditEvent]:
        """Read a task's stream back in write order.

        Lines that fail to decode are skipped with a warning. A missing
        stream yields an empty list.
        """
        path = self.path_for(task_id)
        if not path.exists():
            return []

        events: list[AuditEvent] = []
        with path.open(encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                try:
                    events.append(AuditEvent.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    logger.warning("skipping unreadable audit line %s:%d: %s", path, lineno, e)
        return events

    def task_ids(self) -> list[str]:
        """Task ids with an audit stream, most recently written first."""
        if not self.logs_dir.exists():
            return []
        files = sorted(
            self.logs_dir.glob("*.jsonl"), key=lambda p: p.stat().st_mtime, reverse=True
        )
        return [p.stem for p in files]
