"""Tests for the dependency-graph orchestrator."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest

from repokit.core.graph import (
    ExecutionState,
    Orchestrator,
    TaskSpec,
    run_graph,
    validate_graph,
)
from repokit.core.result import Err, GraphError, Ok, ProcessError, RepokitError, Result


@dataclass
class Trace:
    events: list[str] = field(default_factory=list)
    done: set[str] = field(default_factory=set)
    started_with: dict[str, set[str]] = field(default_factory=dict)


def _task(name: str, *, fail: bool = False, delay: float = 0.0):  # noqa: ANN202
    async def _run(trace: Trace) -> Result[None, RepokitError]:
        trace.started_with[name] = set(trace.done)
        trace.events.append(f"start:{name}")
        await asyncio.sleep(delay)
        trace.events.append(f"end:{name}")
        if fail:
            return Err(ProcessError(f"{name} returned with code 2", command=name, exit_code=2))
        trace.done.add(name)
        return Ok(None)

    return _run


def _diamond(**overrides: TaskSpec) -> dict[str, TaskSpec]:
    graph = {
        "A": TaskSpec(fn=_task("A")),
        "B": TaskSpec(depends_on=["A"], fn=_task("B", delay=0.01)),
        "C": TaskSpec(depends_on=["A"], fn=_task("C")),
        "D": TaskSpec(depends_on=["B", "C"], fn=_task("D")),
    }
    graph.update(overrides)
    return graph


class TestValidateGraph:
    def test_empty_graph_is_valid(self) -> None:
        assert validate_graph({}) == Ok([])

    def test_order_respects_dependencies(self) -> None:
        order = validate_graph(_diamond()).unwrap()
        assert order.index("A") < order.index("B") < order.index("D")
        assert order.index("C") < order.index("D")

    def test_unknown_dependency(self) -> None:
        result = validate_graph({"A": TaskSpec(depends_on=["missing"], fn=_task("A"))})
        assert isinstance(result, Err)
        assert isinstance(result.error, GraphError)
        assert "missing" in result.error.message

    def test_cycle(self) -> None:
        result = validate_graph(
            {
                "A": TaskSpec(depends_on=["B"], fn=_task("A")),
                "B": TaskSpec(depends_on=["A"], fn=_task("B")),
            }
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, GraphError)
        assert result.error.context["tasks"] == ["A", "B"]

    def test_self_dependency_is_a_cycle(self) -> None:
        result = validate_graph({"A": TaskSpec(depends_on=["A"], fn=_task("A"))})
        assert isinstance(result, Err)
        assert result.error.context["tasks"] == ["A"]

    def test_cycle_error_names_only_cycle_members(self) -> None:
        result = validate_graph(
            {
                "A": TaskSpec(depends_on=["B"], fn=_task("A")),
                "B": TaskSpec(depends_on=["A"], fn=_task("B")),
                "C": TaskSpec(depends_on=["A"], fn=_task("C")),
                "D": TaskSpec(depends_on=["C"], fn=_task("D")),
            }
        )
        assert isinstance(result, Err)
        assert result.error.context["tasks"] == ["A", "B"]
        assert "C" not in result.error.message

    def test_task_spec_is_frozen(self) -> None:
        spec = TaskSpec(depends_on=["A"], fn=_task("B"))
        assert spec.depends_on == ("A",)
        with pytest.raises(Exception):
            spec.depends_on = ("C",)  # type: ignore[misc]


class TestOrchestrator:
    @pytest.mark.asyncio
    async def test_dependents_wait_for_all_dependencies(self) -> None:
        trace = Trace()
        result, report = await run_graph(_diamond(), trace)

        assert result == Ok(trace)
        assert trace.started_with["A"] == set()
        assert "A" in trace.started_with["B"]
        assert "A" in trace.started_with["C"]
        assert {"B", "C"} <= trace.started_with["D"]
        assert all(state is ExecutionState.DONE for state in report.states.values())

    @pytest.mark.asyncio
    async def test_independent_tasks_run_concurrently(self) -> None:
        trace = Trace()
        graph = {
            "slow": TaskSpec(fn=_task("slow", delay=0.05)),
            "fast": TaskSpec(fn=_task("fast")),
        }
        await run_graph(graph, trace)

        # fast finishes while slow is still sleeping
        assert trace.events.index("end:fast") < trace.events.index("end:slow")

    @pytest.mark.asyncio
    async def test_failure_skips_dependents_and_reports_once(self) -> None:
        trace = Trace()
        calls: list[Result[Trace, RepokitError]] = []
        orchestrator: Orchestrator[Trace] = Orchestrator()

        result = await orchestrator.run(
            _diamond(B=TaskSpec(depends_on=["A"], fn=_task("B", fail=True))),
            trace,
            on_complete=calls.append,
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, ProcessError)
        assert result.error.exit_code == 2
        assert calls == [result]
        assert "D" not in trace.started_with
        assert orchestrator.report.failed_task == "B"
        assert orchestrator.report.states["D"] is ExecutionState.PENDING
        assert orchestrator.report.states["B"] is ExecutionState.FAILED

    @pytest.mark.asyncio
    async def test_running_tasks_finish_after_failure(self) -> None:
        trace = Trace()
        graph = {
            "boom": TaskSpec(fn=_task("boom", fail=True)),
            "slow": TaskSpec(fn=_task("slow", delay=0.02)),
            "after_slow": TaskSpec(depends_on=["slow"], fn=_task("after_slow")),
        }
        result, report = await run_graph(graph, trace)

        assert isinstance(result, Err)
        assert result.error.message == "boom returned with code 2"
        assert "end:slow" in trace.events
        assert "after_slow" not in trace.started_with
        assert report.states["slow"] is ExecutionState.DONE
        assert report.completed == ["slow"]

    @pytest.mark.asyncio
    async def test_first_failure_wins(self) -> None:
        trace = Trace()
        graph = {
            "early": TaskSpec(fn=_task("early", fail=True)),
            "late": TaskSpec(fn=_task("late", fail=True, delay=0.02)),
        }
        result, report = await run_graph(graph, trace)

        assert isinstance(result, Err)
        assert result.error.message == "early returned with code 2"
        assert report.failed_task == "early"
        assert report.states["late"] is ExecutionState.FAILED

    @pytest.mark.asyncio
    async def test_cycle_rejected_before_any_task_runs(self) -> None:
        trace = Trace()
        graph = {
            "A": TaskSpec(depends_on=["B"], fn=_task("A")),
            "B": TaskSpec(depends_on=["A"], fn=_task("B")),
            "C": TaskSpec(fn=_task("C")),
        }
        calls: list[object] = []
        orchestrator: Orchestrator[Trace] = Orchestrator()
        result = await orchestrator.run(graph, trace, on_complete=calls.append)

        assert isinstance(result, Err)
        assert isinstance(result.error, GraphError)
        assert trace.events == []
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_raised_exception_becomes_failure(self) -> None:
        async def explode(_: Trace) -> None:
            raise ValueError("kaboom")

        result, report = await run_graph({"x": TaskSpec(fn=explode)}, Trace())

        assert isinstance(result, Err)
        assert "kaboom" in result.error.message
        assert report.states["x"] is ExecutionState.FAILED

    @pytest.mark.asyncio
    async def test_plain_return_value_counts_as_success(self) -> None:
        async def returns_none(_: Trace) -> None:
            return None

        result, _ = await run_graph({"x": TaskSpec(fn=returns_none)}, Trace())
        assert isinstance(result, Ok)
