"""watchnight - sequential background import jobs for a local movie catalog."""

from watchnight.config import Settings
from watchnight.manager import TaskManager
from watchnight.models import EnqueueResult, JobStatus, JobView, ManagerState, OperationResult
from watchnight.notify import StateChannel
from watchnight.registry import TaskKind, TaskRegistry
from watchnight.task import AbortSignal, BackgroundTask, TaskCancelled, TaskContext

__version__ = "0.1.0"
__all__ = [
    "AbortSignal",
    "BackgroundTask",
    "EnqueueResult",
    "JobStatus",
    "JobView",
    "ManagerState",
    "OperationResult",
    "Settings",
    "StateChannel",
    "TaskCancelled",
    "TaskContext",
    "TaskKind",
    "TaskManager",
    "TaskRegistry",
]
