"""Shared fixtures and test tasks."""

import asyncio

import pytest

from watchnight import BackgroundTask, TaskCancelled, TaskRegistry
from watchnight.db import init_db
from watchnight.movies import MoviesModel


class GatedTask(BackgroundTask):
    """Runs until args["gate"] is set, then finishes (or fails with args["fail"])."""

    label = "Gated Task"

    async def run_task(self, args, context):
        started = args.get("started")
        if started is not None:
            started.set()
        await args["gate"].wait()
        if args.get("fail") is not None:
            raise RuntimeError(args["fail"])


class OtherGatedTask(GatedTask):
    label = "Other Gated Task"


class FailingTask(BackgroundTask):
    label = "Failing Task"

    async def run_task(self, args, context):
        await asyncio.sleep(0)
        raise ValueError(args.get("message", "boom"))


class CooperativeTask(BackgroundTask):
    """Counts forever, polling for cancellation every 10 units."""

    label = "Cooperative Task"

    async def run_task(self, args, context):
        seen = args.setdefault("seen", [])
        n = 0
        while True:
            n += 1
            if n % 10 == 0 and context.is_cancelled():
                seen.append(n)
                raise TaskCancelled()
            context.report_progress(n, None, f"unit {n}")
            await asyncio.sleep(0.001)


class AbortableTask(BackgroundTask):
    """Blocks on I/O that only the abort signal can interrupt."""

    label = "Abortable Task"

    async def run_task(self, args, context):
        await context.abort_signal.guard(asyncio.Event().wait())


class StubbornTask(BackgroundTask):
    """Never looks at cancellation; finishes only when its gate opens."""

    label = "Stubborn Task"

    async def run_task(self, args, context):
        await args["gate"].wait()


@pytest.fixture
def registry():
    reg = TaskRegistry()
    reg.register("import-x", GatedTask)
    reg.register("import-y", OtherGatedTask)
    reg.register("fail", FailingTask)
    reg.register("coop", CooperativeTask)
    reg.register("abortable", AbortableTask)
    reg.register("stubborn", StubbornTask)
    return reg


@pytest.fixture
async def movies():
    conn = await init_db(":memory:")
    model = MoviesModel(conn)
    yield model
    await model.close()
