"""Single-slot background task manager."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Callable

from watchnight.models import (
    EnqueueResult,
    Job,
    JobStatus,
    JobView,
    ManagerState,
    OperationResult,
)
from watchnight.registry import TaskKind, TaskRegistry
from watchnight.task import AbortSignal, TaskContext

logger = logging.getLogger(__name__)

NotifyFn = Callable[[ManagerState], None]


class TaskManager:
    """
    Runs background jobs one at a time, in the order they were enqueued.

    One job occupies the active slot; the rest wait in a FIFO queue. Every
    state change is pushed synchronously to a single notification sink as a
    ManagerState snapshot.

    Cancellation is two-phase: cancel_active() marks the job cancelled and
    fires its abort signal, but the slot is only released once the task's
    run_task() has settled.

    Example:
        registry = TaskRegistry()
        register_importers(registry, movies, settings)

        manager = TaskManager(registry, notify=channel)
        result = manager.enqueue("import-watchmode")
        await manager.join()
    """

    def __init__(self, registry: TaskRegistry, *, notify: NotifyFn | None = None) -> None:
        registry.freeze()
        self._registry = registry
        self._notify_fn = notify

        self._queue: list[Job] = []
        self._active: Job | None = None
        self._runner: asyncio.Task | None = None
        self._ids = itertools.count(1)

    # --- Notification ---

    def set_notify_fn(self, fn: NotifyFn | None) -> None:
        """Register the notification sink. Replaces any previous sink."""
        self._notify_fn = fn

    def _emit(self) -> None:
        if self._notify_fn is None:
            return
        try:
            self._notify_fn(self.get_state())
        except Exception:
            logger.exception("Notification callback failed")

    # --- Views ---

    def _view(self, job: Job) -> JobView:
        return JobView(
            id=job.id,
            type=job.type,
            label=self._registry.label_for(job.type),
            status=job.status,
            current=job.current,
            max=job.max,
            description=job.description,
        )

    def get_state(self) -> ManagerState:
        """Snapshot of the active job and the queued jobs."""
        return ManagerState(
            active=self._view(self._active) if self._active else None,
            queue=tuple(self._view(job) for job in self._queue),
        )

    @property
    def is_idle(self) -> bool:
        return self._active is None and not self._queue

    # --- Operations ---

    def enqueue(self, task_type: str | TaskKind, args: dict[str, Any] | None = None) -> EnqueueResult:
        """
        Add a job to the end of the queue and start it if nothing is running.

        Must be called from inside the running event loop. Execution is
        asynchronous; the assigned id is returned immediately.

        Args:
            task_type: Registry key of the task to run.
            args: Parameters forwarded verbatim to the task's run_task().

        Returns:
            EnqueueResult with the new task id, or an error for unknown types.
        """
        asyncio.get_running_loop()

        key = task_type.value if isinstance(task_type, TaskKind) else task_type
        if key not in self._registry:
            return EnqueueResult(success=False, error=f"Unknown task type: {key}")

        job = Job(
            id=f"task-{next(self._ids)}-{int(time.time() * 1000)}",
            type=key,
            args=dict(args or {}),
            created_at=time.time(),
        )
        self._queue.append(job)
        logger.debug("Queued %s (%s)", job.id, job.type)
        self._emit()
        self.process_queue()
        return EnqueueResult(success=True, task_id=job.id)

    def cancel_active(self) -> OperationResult:
        """
        Request cancellation of the running job.

        The job is marked cancelled and its abort signal fires at once, but it
        stays in the active slot until its run settles.
        """
        job = self._active
        if job is None:
            return OperationResult(success=False, error="No active task to cancel")

        job.status = JobStatus.CANCELLED
        job.cancelled = True
        if job.signal is not None:
            job.signal.abort("Task cancelled")
        logger.info("Cancellation requested for %s", job.id)
        self._emit()
        return OperationResult(success=True)

    def remove_queued(self, task_id: str) -> OperationResult:
        """Remove a job that has not started yet."""
        for i, job in enumerate(self._queue):
            if job.id == task_id:
                self._queue.pop(i)
                logger.debug("Removed queued %s", task_id)
                self._emit()
                return OperationResult(success=True)
        return OperationResult(success=False, error=f"Queued task not found: {task_id}")

    # --- Execution ---

    def process_queue(self) -> None:
        """Promote the head of the queue to the active slot, if the slot is free."""
        if self._active is not None or not self._queue:
            return

        job = self._queue.pop(0)
        job.status = JobStatus.RUNNING
        job.current = None
        job.max = None
        job.description = ""
        job.cancelled = False
        job.signal = AbortSignal()
        job.started_at = time.time()
        self._active = job
        logger.info("Starting %s (%s)", job.id, job.type)
        self._emit()

        self._runner = asyncio.get_running_loop().create_task(self._run(job))

    async def _run(self, job: Job) -> None:
        context = TaskContext(
            job,
            is_current=lambda: self._active is job,
            on_change=self._emit,
        )

        try:
            task_type = self._registry.get(job.type)
            task = task_type.factory()
            await task.run_task(dict(job.args), context)
        except asyncio.CancelledError:
            # Abandoned by stop(); release the slot without starting anything else.
            job.status = JobStatus.CANCELLED
            job.cancelled = True
            self._finish(job)
            raise
        except Exception as e:
            if not job.cancelled:
                job.status = JobStatus.FAILED
                job.description = str(e) or type(e).__name__
                logger.warning("Task %s failed: %s", job.id, job.description)
            else:
                logger.debug("Task %s stopped after cancellation: %s", job.id, e)
        else:
            if not job.cancelled:
                job.status = JobStatus.COMPLETED
                logger.info("Completed %s", job.id)

        self._finish(job)
        self.process_queue()

    def _finish(self, job: Job) -> None:
        job.finished_at = time.time()
        if job.status is JobStatus.CANCELLED:
            logger.info("Cancelled %s", job.id)
        self._emit()

        self._active = None
        self._runner = None
        self._emit()

    # --- Lifecycle ---

    async def join(self) -> None:
        """Wait until the active slot and the queue are both empty."""
        while self._runner is not None or self._queue:
            if self._runner is None:
                self.process_queue()
                if self._runner is None:
                    return
            await asyncio.wait({self._runner})

    async def stop(self, timeout: float | None = None) -> None:
        """
        Shut down: drop queued jobs, cancel the running one, wait for it.

        Args:
            timeout: Max seconds to wait for the running job to honour the
                cancellation. None = wait forever. On timeout the run is
                abandoned.
        """
        if self._queue:
            self._queue.clear()
            self._emit()
        self.cancel_active()

        runner = self._runner
        if runner is None:
            return

        job = self._active
        done, _ = await asyncio.wait({runner}, timeout=timeout)
        if not done:
            logger.warning("Abandoning %s after %ss", job.id if job else "task", timeout)
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass

        # A run cancelled before its first step never reaches _finish().
        if job is not None and self._active is job:
            self._finish(job)

        # Jobs enqueued while stop() was waiting still get their turn.
        self.process_queue()
