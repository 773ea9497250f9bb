"""Task contract and the per-run execution context."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, ClassVar, TypeVar

from watchnight.models import Job

T = TypeVar("T")


class TaskCancelled(Exception):
    """Raised by a task when it observes a cancellation request."""

    def __init__(self, message: str = "Task cancelled"):
        super().__init__(message)


class AbortSignal:
    """
    Cancellation token handed to interruptible I/O.

    Polling tasks check ``aborted`` between units of work. Code blocked on a
    read wraps it in ``guard()`` so that an abort unblocks it immediately
    instead of waiting for the next poll.

    Example:
        signal = AbortSignal()
        body = await signal.guard(client.get(url))
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = ""

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def abort(self, reason: str = "Task cancelled") -> None:
        """Fire the signal. Only the first reason is kept."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def raise_if_aborted(self) -> None:
        if self.aborted:
            raise TaskCancelled(self._reason)

    async def wait(self) -> None:
        """Block until the signal fires."""
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable``, giving up as soon as the signal fires.

        The awaitable runs as its own asyncio task; on abort that task is
        cancelled and TaskCancelled is raised in the caller.
        """
        if self.aborted:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise TaskCancelled(self._reason)

        work = asyncio.ensure_future(awaitable)
        aborted = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            aborted.cancel()
            if not work.done():
                work.cancel()
                try:
                    await work
                except (asyncio.CancelledError, Exception):
                    # Teardown errors of the interrupted I/O are not the task's failure.
                    pass

        if work not in done:
            raise TaskCancelled(self._reason)
        return work.result()


class TaskContext:
    """
    Per-run object through which a task reports progress and observes
    cancellation. Bound to a single job; never reused across runs.
    """

    def __init__(
        self,
        job: Job,
        *,
        is_current: Callable[[], bool],
        on_change: Callable[[], None],
    ):
        self._job = job
        self._is_current = is_current
        self._on_change = on_change
        self.abort_signal: AbortSignal = job.signal or AbortSignal()

    def report_progress(
        self,
        current: int | None = None,
        max: int | None = None,
        description: str = "",
    ) -> None:
        """
        Update the job's visible progress and notify observers.

        Leave ``current`` or ``max`` unset for indeterminate progress.
        Ignored once the job has left the active slot or has been cancelled.
        """
        if not self._is_current() or self._job.cancelled:
            return
        self._job.current = current
        self._job.max = max
        self._job.description = description or ""
        self._on_change()

    def is_cancelled(self) -> bool:
        return self._job.cancelled

    async def checkpoint(self) -> None:
        """Raise TaskCancelled if cancellation was requested, otherwise yield once."""
        if self._job.cancelled:
            raise TaskCancelled()
        await asyncio.sleep(0)


class BackgroundTask(ABC):
    """
    Base class for jobs run by the TaskManager.

    Subclasses set ``label`` and implement ``run_task``. Return normally on
    success; raise an exception with a readable message on failure. Long
    loops must call ``context.is_cancelled()`` or ``await context.checkpoint()``
    at a bounded interval.

    Example:
        class CountTask(BackgroundTask):
            label = "Count to ten"

            async def run_task(self, args, context):
                for i in range(10):
                    await context.checkpoint()
                    context.report_progress(i + 1, 10, f"Counted {i + 1}")
    """

    label: ClassVar[str] = "Unnamed Task"

    @abstractmethod
    async def run_task(self, args: dict[str, Any], context: TaskContext) -> None:
        ...
