"""
Task Registry
-------------

Per-supervisor bookkeeping of the tasks it runs.

Features:
- Registration order (ids are assigned sequentially)
- State tracking: REGISTERED → RUNNING → STOPPING → STOPPED | FAILED
- Introspection API for logs and the private server's /tasks endpoint
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from lifecycle.task import Task
from models.enums import TaskState
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.TASK)


# ---------------------------------------------------------------------------
# TASK METADATA
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaskInfo:
    """Immutable metadata captured at registration time."""
    id: int
    name: str
    registered_at: str  # ISO UTC string
    has_stop: bool


@dataclass
class TaskRecord:
    """Mutable state of one supervised task."""
    task: Task
    info: TaskInfo
    state: TaskState = TaskState.REGISTERED
    error: Optional[BaseException] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.info.id,
            "name": self.info.name,
            "state": self.state.name.lower(),
            "registered_at": self.info.registered_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
        }


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# TASK REGISTRY
# ---------------------------------------------------------------------------

class TaskRegistry:
    """
    Ordered record of every task registered with one Supervisor.

    Only touched from the event loop thread.
    """

    def __init__(self) -> None:
        self._records: List[TaskRecord] = []

    def register(self, task: Task) -> TaskRecord:
        info = TaskInfo(
            id=len(self._records) + 1,
            name=task.name,
            registered_at=_utcnow(),
            has_stop=task.stop is not None,
        )
        record = TaskRecord(task=task, info=info)
        self._records.append(record)
        log.debug(f"[Task {info.id}] Registered - {task.name}")
        return record

    # -----------------------------
    # State transitions
    # -----------------------------

    def mark_running(self, record: TaskRecord) -> None:
        record.state = TaskState.RUNNING
        record.started_at = _utcnow()

    def mark_stopping(self, record: TaskRecord) -> None:
        if record.state is not TaskState.FAILED:
            record.state = TaskState.STOPPING

    def mark_stopped(self, record: TaskRecord) -> None:
        if record.state is not TaskState.FAILED:
            record.state = TaskState.STOPPED
        if record.finished_at is None:
            record.finished_at = _utcnow()

    def mark_failed(self, record: TaskRecord, error: BaseException) -> None:
        record.state = TaskState.FAILED
        if record.error is None:
            record.error = error
        record.finished_at = _utcnow()

    # -----------------------------
    # Public API
    # -----------------------------

    def __len__(self) -> int:
        return len(self._records)

    def list_all(self) -> List[TaskRecord]:
        """All records in registration order."""
        return list(self._records)

    def active(self) -> List[TaskRecord]:
        return [r for r in self._records if r.state in (TaskState.RUNNING, TaskState.STOPPING)]

    def failed(self) -> List[TaskRecord]:
        return [r for r in self._records if r.state is TaskState.FAILED]

    def summary(self) -> str:
        """Return human-readable summary for logs."""
        return (
            f"Tasks: total={len(self._records)}, running={len(self.active())}, "
            f"failed={len(self.failed())}"
        )

    def snapshot(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self._records]
