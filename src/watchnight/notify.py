"""Latest-value notification channel between the task manager and a host."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from watchnight.models import ManagerState


class StateChannel:
    """
    Latest-value sink for ManagerState snapshots.

    Pass an instance as the manager's notify function. Publishing never
    blocks; consumers always read the newest snapshot, so a slow consumer
    sees coalesced updates rather than every intermediate state.

    Example:
        channel = StateChannel()
        manager = TaskManager(registry, notify=channel)

        async for state in channel.updates():
            render(state)
    """

    def __init__(self) -> None:
        self._latest: ManagerState = ManagerState()
        self._version = 0
        self._changed = asyncio.Event()
        self._closed = False

    @property
    def latest(self) -> ManagerState:
        return self._latest

    @property
    def version(self) -> int:
        """Number of snapshots published so far."""
        return self._version

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, state: ManagerState) -> None:
        self._latest = state
        self._version += 1
        self._changed.set()

    __call__ = publish

    def close(self) -> None:
        """Wake all consumers and end their update iterators."""
        self._closed = True
        self._changed.set()

    async def wait_for_update(self, after_version: int) -> tuple[int, ManagerState]:
        """
        Wait for a snapshot newer than ``after_version``.

        Returns immediately if one was already published. Returns the current
        snapshot unchanged once the channel is closed.
        """
        while self._version <= after_version and not self._closed:
            self._changed.clear()
            await self._changed.wait()
        return self._version, self._latest

    async def updates(self) -> AsyncIterator[ManagerState]:
        """Yield the latest snapshot each time it changes, until close()."""
        seen = self._version
        while True:
            version, state = await self.wait_for_update(seen)
            if version == seen:
                return
            seen = version
            yield state
