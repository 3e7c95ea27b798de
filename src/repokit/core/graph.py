"""Dependency-graph task orchestration.

This module runs a small, fixed graph of named async tasks over a shared
context object. Tasks declare the names they depend on; the orchestrator
validates the graph up front, then starts every task the moment its
dependencies have succeeded, so independent tasks run concurrently on the
event loop.

Key classes:
- TaskSpec: Dependencies and task function for one graph node
- ExecutionState: Lifecycle of a node during one run
- RunReport: Final state of every node plus the run's error
- Orchestrator: Validates and executes a task map

Failure handling: the first failing task stops the scheduling of new tasks.
Tasks already running are allowed to finish but their outcomes no longer
affect the result, which carries the first failure's error only.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from repokit.core.console import get_logger
from repokit.core.result import Err, GraphError, Ok, RepokitError, Result
from repokit.core.tasks import Completion, NamedTask, TaskResult

logger = get_logger(__name__)

C = TypeVar("C")


class ExecutionState(Enum):
    """Lifecycle status for a node in one orchestrator run."""

    PENDING = auto()  # Not yet started
    RUNNING = auto()  # Currently executing
    DONE = auto()  # Finished successfully
    FAILED = auto()  # Finished with error


class TaskSpec(BaseModel):
    """A graph node: the names it waits for and the function it runs.

    Attributes:
        depends_on: Task names that must finish successfully first
        fn: Coroutine function called with the shared context
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    depends_on: tuple[str, ...] = Field(default_factory=tuple)
    fn: Callable[..., Any]


TaskMap = Mapping[str, TaskSpec]


@dataclass
class RunReport:
    """What happened to each task during a run."""

    states: dict[str, ExecutionState] = field(default_factory=dict)
    failed_task: str | None = None
    error: RepokitError | None = None

    def tasks_in(self, state: ExecutionState) -> list[str]:
        return [name for name, current in self.states.items() if current is state]

    @property
    def completed(self) -> list[str]:
        return self.tasks_in(ExecutionState.DONE)

    @property
    def succeeded(self) -> bool:
        return self.error is None


def _cycle_members(task_map: TaskMap, unordered: set[str]) -> set[str]:
    """Drop nodes that merely wait on a cycle, keeping those on one."""
    remaining = set(unordered)
    while True:
        needed = {dep for name in remaining for dep in task_map[name].depends_on}
        downstream = remaining - needed
        if not downstream:
            return remaining
        remaining -= downstream


def validate_graph(task_map: TaskMap) -> Result[list[str], GraphError]:
    """Check every dependency exists and the graph is acyclic.

    Uses Kahn's algorithm.

    Returns:
        Ok(names in a valid execution order) or Err(GraphError)
    """
    for name, spec in task_map.items():
        for dep in spec.depends_on:
            if dep not in task_map:
                return Err(
                    GraphError(
                        f"Task {name} depends on unknown task {dep}",
                        context={"task": name, "dependency": dep},
                    )
                )

    in_degree: dict[str, int] = {name: 0 for name in task_map}
    dependents: dict[str, list[str]] = {name: [] for name in task_map}
    for name, spec in task_map.items():
        for dep in set(spec.depends_on):
            dependents[dep].append(name)
            in_degree[name] += 1

    queue = [name for name, degree in in_degree.items() if degree == 0]
    order: list[str] = []
    while queue:
        current = queue.pop(0)
        order.append(current)
        for dependent in dependents[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(task_map):
        cyclic = sorted(_cycle_members(task_map, set(task_map) - set(order)))
        return Err(
            GraphError(
                f"Task graph contains a cycle through: {', '.join(cyclic)}",
                context={"tasks": cyclic},
            )
        )

    return Ok(order)


class Orchestrator(Generic[C]):
    """Runs a task map over a shared context with maximum parallelism."""

    def __init__(self) -> None:
        self.report: RunReport = RunReport()

    async def run(
        self,
        task_map: TaskMap,
        context: C,
        on_complete: Callable[[Result[C, RepokitError]], None] | None = None,
    ) -> Result[C, RepokitError]:
        """Execute every task in dependency order.

        Args:
            task_map: Mapping of task name to TaskSpec
            context: Shared object handed to every task function
            on_complete: Called exactly once with the final Result

        Returns:
            Ok(context) when every task succeeded, otherwise Err with the
            first failing task's error (or the GraphError from validation).
        """
        self.report = RunReport(states={name: ExecutionState.PENDING for name in task_map})

        match validate_graph(task_map):
            case Err(graph_error):
                self.report.error = graph_error
                result: Result[C, RepokitError] = Err(graph_error)
            case Ok(_):
                result = await self._execute(task_map, context)

        if on_complete is not None:
            on_complete(result)
        return result

    async def _execute(self, task_map: TaskMap, context: C) -> Result[C, RepokitError]:
        states = self.report.states
        completions: dict[str, Completion[TaskResult]] = {
            name: Completion(name) for name in task_map
        }
        running: dict[asyncio.Task[TaskResult], str] = {}

        def _start_eligible() -> None:
            for name, spec in task_map.items():
                if states[name] is not ExecutionState.PENDING:
                    continue
                if all(states[dep] is ExecutionState.DONE for dep in spec.depends_on):
                    states[name] = ExecutionState.RUNNING
                    logger.debug("Starting task %s", name)
                    bound = NamedTask(name=name, fn=spec.fn).bind(context)
                    running[asyncio.create_task(bound(), name=f"repokit:{name}")] = name

        _start_eligible()
        while running:
            finished, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
            for handle in finished:
                name = running.pop(handle)
                outcome = handle.result()
                completions[name].resolve(outcome)
                match outcome:
                    case Ok(_):
                        states[name] = ExecutionState.DONE
                        logger.debug("Task %s done", name)
                    case Err(err):
                        states[name] = ExecutionState.FAILED
                        if self.report.error is None:
                            self.report.failed_task = name
                            self.report.error = err
                            logger.debug("Task %s failed: %s", name, err)
                        else:
                            logger.debug("Ignoring late failure of %s: %s", name, err)
            if self.report.error is None:
                _start_eligible()

        if self.report.error is not None:
            return Err(self.report.error)
        return Ok(context)


async def run_graph(task_map: TaskMap, context: C) -> tuple[Result[C, RepokitError], RunReport]:
    """Run a task map once and return the result with its report."""
    orchestrator: Orchestrator[C] = Orchestrator()
    result = await orchestrator.run(task_map, context)
    return result, orchestrator.report


__all__ = [
    "ExecutionState",
    "Orchestrator",
    "RunReport",
    "TaskMap",
    "TaskSpec",
    "run_graph",
    "validate_graph",
]
