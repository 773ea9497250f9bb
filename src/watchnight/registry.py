"""Task registry: maps a task type key to a task factory."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from watchnight.task import BackgroundTask

TaskFactory = Callable[[], BackgroundTask]


class TaskKind(str, Enum):
    """Built-in task types."""

    IMPORT_WATCHMODE = "import-watchmode"
    IMPORT_TMDB = "import-tmdb"


@dataclass(frozen=True)
class TaskType:
    """How to build a task of one type."""

    name: str
    factory: TaskFactory
    label: str


class TaskRegistry:
    """
    Init-time mapping from task type key to a zero-argument task factory.

    Registration happens at process start. A TaskManager freezes its registry,
    after which the mapping is read-only.

    Example:
        registry = TaskRegistry()
        registry.register(TaskKind.IMPORT_TMDB, lambda: ImportTmdbTask(movies, settings))

        @registry.task("reindex", label="Rebuild search index")
        class ReindexTask(BackgroundTask):
            ...
    """

    def __init__(self) -> None:
        self._types: dict[str, TaskType] = {}
        self._frozen = False

    def register(
        self,
        name: str | TaskKind,
        factory: TaskFactory,
        *,
        label: str | None = None,
    ) -> TaskType:
        """
        Register a task type.

        Args:
            name: Key used when enqueueing.
            factory: Zero-argument callable returning a fresh BackgroundTask.
                A BackgroundTask subclass works as its own factory.
            label: Display name. Defaults to the factory's ``label`` attribute,
                then to the key itself.
        """
        if self._frozen:
            raise RuntimeError("Task registry is frozen; register tasks before starting the manager")

        key = _key(name)
        if key in self._types:
            raise ValueError(f"Task type already registered: {key}")

        if label is None:
            label = getattr(factory, "label", None) or key

        task_type = TaskType(name=key, factory=factory, label=label)
        self._types[key] = task_type
        return task_type

    def task(self, name: str | TaskKind, *, label: str | None = None):
        """Decorator form of register() for task classes."""

        def decorator(cls):
            self.register(name, cls, label=label)
            return cls

        return decorator

    def get(self, name: str | TaskKind) -> TaskType | None:
        return self._types.get(_key(name))

    def label_for(self, name: str | TaskKind) -> str:
        """Display label for a type key, or the key itself if unregistered."""
        task_type = self.get(name)
        return task_type.label if task_type else _key(name)

    def names(self) -> list[str]:
        return list(self._types)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return _key(name) in self._types

    def __len__(self) -> int:
        return len(self._types)


def _key(name: str | TaskKind) -> str:
    return name.value if isinstance(name, TaskKind) else str(name)
