"""Core data models for watchnight."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from watchnight.task import AbortSignal


class JobStatus(str, Enum):
    """Possible states for a background job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class Job:
    """A request to run a background task, plus its run state once active."""

    id: str
    type: str  # Task registry key
    args: dict[str, Any] = field(default_factory=dict)
    status: JobStatus = JobStatus.QUEUED
    current: int | None = None
    max: int | None = None
    description: str = ""
    created_at: float = 0.0
    started_at: float | None = None
    finished_at: float | None = None

    # Run state, set when promoted to the active slot
    cancelled: bool = False
    signal: AbortSignal | None = None


@dataclass(frozen=True)
class JobView:
    """Display payload for a job. Never carries run-state internals."""

    id: str
    type: str
    label: str
    status: JobStatus
    current: int | None = None
    max: int | None = None
    description: str = ""

    @property
    def indeterminate(self) -> bool:
        return self.current is None or not self.max

    @property
    def percent(self) -> int | None:
        """Whole-number percent complete, or None when progress is indeterminate."""
        if self.indeterminate:
            return None
        return min(100, round(self.current / self.max * 100))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "status": self.status.value,
            "description": self.description,
        }
        if self.current is not None:
            data["current"] = self.current
        if self.max is not None:
            data["max"] = self.max
        return data


@dataclass(frozen=True)
class ManagerState:
    """Snapshot of the manager's visible state: the active job and the wait list."""

    active: JobView | None = None
    queue: tuple[JobView, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active.to_dict() if self.active else None,
            "queue": [view.to_dict() for view in self.queue],
        }


@dataclass(frozen=True)
class EnqueueResult:
    """Outcome of an enqueue request."""

    success: bool
    task_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.task_id is not None:
            data["taskId"] = self.task_id
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a cancel or remove request."""

    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data
