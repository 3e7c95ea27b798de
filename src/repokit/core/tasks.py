"""Named units of orchestrated work.

A NamedTask pairs a task name with a coroutine function over a shared
context. Binding it to a context yields a zero-argument coroutine function
that always produces exactly one Result, never an exception.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from repokit.core.console import get_logger
from repokit.core.result import Err, Ok, RepokitError, Result

logger = get_logger(__name__)

C = TypeVar("C")
T = TypeVar("T")

TaskResult = Result[Any, RepokitError]
TaskFn = Callable[[Any], Awaitable[Any]]
BoundTask = Callable[[], Awaitable[TaskResult]]


class Completion(Generic[T]):
    """Single-assignment slot for a task outcome.

    Resolving twice raises RuntimeError instead of silently reporting a task
    as finished a second time.
    """

    __slots__ = ("_name", "_value", "_resolved")

    def __init__(self, name: str) -> None:
        self._name = name
        self._value: T | None = None
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    @property
    def value(self) -> T:
        if not self._resolved:
            raise RuntimeError(f"Task {self._name} has not completed")
        return self._value  # type: ignore[return-value]

    def resolve(self, value: T) -> None:
        if self._resolved:
            raise RuntimeError(f"Task {self._name} completed more than once")
        self._value = value
        self._resolved = True


def _as_result(outcome: Any) -> TaskResult:
    if isinstance(outcome, (Ok, Err)):
        return outcome
    return Ok(outcome)


@dataclass(frozen=True, slots=True)
class NamedTask(Generic[C]):
    """A task function tagged with its name in the graph."""

    name: str
    fn: TaskFn

    def bind(self, context: C) -> BoundTask:
        """Return a zero-argument coroutine function running this task on context.

        The body may return a Result, a plain value (treated as success) or
        raise. Exceptions become Err so the caller only ever sees a Result.
        """

        async def _run() -> TaskResult:
            try:
                outcome = await self.fn(context)
            except RepokitError as exc:
                return Err(exc)
            except Exception as exc:
                logger.debug("Task %s raised", self.name, exc_info=True)
                return Err(RepokitError(f"{self.name} failed: {exc}", context={"task": self.name}))
            return _as_result(outcome)

        _run.__name__ = f"task_{self.name}"
        return _run


__all__ = ["BoundTask", "Completion", "NamedTask", "TaskFn", "TaskResult"]
