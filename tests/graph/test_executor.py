"""Tests for GraphExecutor and execute_graph."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from cmdgraph.commands.aggregate import AggregateCommand
from cmdgraph.commands.constant import ConstantCommand
from cmdgraph.commands.destructure import DestructureCommand
from cmdgraph.commands.fallback import FallbackCommand
from cmdgraph.commands.guard import GuardCommand
from cmdgraph.config.settings import CmdGraphSettings
from cmdgraph.domain.errors import CommandConfigurationError, SkippedError
from cmdgraph.domain.state import ComputableState
from cmdgraph.graph.engine import CommandGraph
from cmdgraph.graph.executor import GraphExecutor, execute_graph
from cmdgraph.plugins import PluginManager, hookimpl

DONE = ComputableState.DONE
FAILED = ComputableState.FAILED
SKIPPED = ComputableState.SKIPPED


class RecordingPlugin:
    def __init__(self) -> None:
        self.settled: list[tuple[str, str, str | None]] = []
        self.finished: list[tuple[bool, dict[str, str]]] = []

    @hookimpl
    def post_command_settled(
        self, command_id: str, name: str, state: str, error: str | None
    ) -> None:
        self.settled.append((command_id, state, error))

    @hookimpl
    def post_graph_executed(self, ok: bool, states: dict[str, str]) -> None:
        self.finished.append((ok, states))


class FailingPlugin:
    @hookimpl
    def post_command_settled(
        self, command_id: str, name: str, state: str, error: str | None
    ) -> None:
        raise RuntimeError("plugin crashed")


class _ConcurrencyTracker:
    def __init__(self) -> None:
        self.active = 0
        self.peak = 0

    async def run(self) -> int:
        self.active += 1
        self.peak = max(self.peak, self.active)
        await asyncio.sleep(0.01)
        self.active -= 1
        return self.peak


def _plugins(*plugins: object) -> PluginManager:
    pm = PluginManager()
    for plugin in plugins:
        pm.register_plugin(plugin)
    return pm


class TestExecute:
    def test_all_commands_settle(self) -> None:
        key = ConstantCommand("CYP-1")
        payload = AggregateCommand({"key": key, "fields": ConstantCommand([])})
        result = asyncio.run(execute_graph(payload))
        assert result.ok is True
        assert result.meta is not None
        assert result.meta["count"] == 3
        assert result.meta["duration_ms"] >= 0
        assert [report.state for report in result.commands] == [DONE, DONE, DONE]
        assert payload.result() == {"key": "CYP-1", "fields": []}

    def test_reports_in_dependency_order(self) -> None:
        leaf = ConstantCommand({"tests": []})
        tests = DestructureCommand(leaf, "tests")
        result = asyncio.run(execute_graph(tests))
        assert [r.command_id for r in result.commands] == [leaf.command_id, tests.command_id]
        assert result.report_for(tests.command_id).inputs == [leaf.command_id]

    def test_shared_input_evaluated_once(self, producer: Any) -> None:
        fetch = producer({"a": 1, "b": 2})
        shared = ConstantCommand(fetch)
        a = DestructureCommand(shared, "a")
        b = DestructureCommand(shared, "b")
        result = asyncio.run(execute_graph(a, b))
        assert result.ok
        assert fetch.calls == 1
        assert (a.result(), b.result()) == (1, 2)

    def test_empty_graph(self) -> None:
        result = asyncio.run(GraphExecutor().execute(CommandGraph()))
        assert result.ok is True
        assert result.commands == []
        assert result.meta is not None
        assert result.meta["count"] == 0


class TestFailurePropagation:
    def test_dependents_of_failure_are_skipped(self, producer: Any) -> None:
        error = ConnectionError("jira unreachable")
        source = ConstantCommand(producer(error=error), name="fetch")
        tests = DestructureCommand(source, "tests", name="tests")
        payload = AggregateCommand({"tests": tests}, name="payload")

        result = asyncio.run(execute_graph(payload))

        assert result.ok is False
        assert source.state is FAILED
        assert source.failure is error
        assert tests.state is SKIPPED
        assert str(tests.failure) == (
            f"Skipping {tests.command_id}: {source.command_id} did not complete"
        )
        assert payload.state is SKIPPED
        assert str(payload.failure) == (
            f"Skipping {payload.command_id}: {tests.command_id} did not complete"
        )
        report = result.report_for(source.command_id)
        assert report.issue is not None
        assert report.issue.code == "failed"
        assert report.issue.message == "jira unreachable"
        assert report.issue.detail == {"type": "ConnectionError"}

    def test_fallback_absorbs_failure(self, producer: Any) -> None:
        fields = ConstantCommand(producer(error=ConnectionError("down")))
        safe = FallbackCommand(fields, fallback_on={FAILED}, fallback_value=[])
        payload = AggregateCommand({"fields": safe})

        result = asyncio.run(execute_graph(payload))

        assert result.ok is True
        assert fields.state is FAILED
        assert safe.state is DONE
        assert payload.result() == {"fields": []}

    def test_fallback_after_skipped_dependent(self, producer: Any) -> None:
        source = ConstantCommand(producer(error=RuntimeError("boom")))
        tests = DestructureCommand(source, "tests")
        safe = FallbackCommand(tests, fallback_on={SKIPPED}, fallback_value=["default"])

        result = asyncio.run(execute_graph(safe))

        assert tests.state is SKIPPED
        assert safe.result() == ["default"]
        assert result.ok is False

    def test_propagates_errors_when_skipping_disabled(self, producer: Any) -> None:
        error = RuntimeError("boom")
        source = ConstantCommand(producer(error=error))
        tests = DestructureCommand(source, "tests")

        result = asyncio.run(execute_graph(tests, skip_dependents_on_failure=False))

        assert tests.state is FAILED
        assert tests.failure is error
        assert result.ok is False

    def test_guard_skip_is_not_a_failure(self) -> None:
        results = ConstantCommand({"totalTests": 0})
        guard = GuardCommand(results, lambda v: v["totalTests"] > 0, "No tests were executed")
        upload = AggregateCommand({"results": guard})

        result = asyncio.run(execute_graph(upload))

        assert result.ok is True
        assert guard.state is SKIPPED
        assert upload.state is SKIPPED
        assert result.report_for(guard.command_id).issue is not None
        assert result.report_for(guard.command_id).issue.message == "No tests were executed"

    def test_cancelled_producer_settles_the_run(self) -> None:
        async def cancelled() -> None:
            raise asyncio.CancelledError()

        source = ConstantCommand(cancelled)
        tests = DestructureCommand(source, "tests")
        sibling = ConstantCommand("unaffected")

        result = asyncio.run(execute_graph(tests, sibling))

        assert source.state is FAILED
        assert tests.state is SKIPPED
        assert sibling.state is DONE
        assert result.ok is False
        issue = result.report_for(source.command_id).issue
        assert issue is not None
        assert issue.message == "CancelledError"

    def test_already_settled_commands_are_reported(self) -> None:
        command = ConstantCommand(1)
        command.set_state(SKIPPED, SkippedError("disabled"))
        result = asyncio.run(execute_graph(command))
        assert result.report_for(command.command_id).state is SKIPPED
        assert result.ok is True


class TestConcurrency:
    @pytest.mark.parametrize(("limit", "expected_peak"), [(1, 1), (None, 4)])
    def test_max_concurrency(self, limit: int | None, expected_peak: int) -> None:
        tracker = _ConcurrencyTracker()
        commands = [ConstantCommand(tracker.run) for _ in range(4)]
        asyncio.run(execute_graph(*commands, max_concurrency=limit))
        assert tracker.peak == expected_peak

    @pytest.mark.parametrize("limit", [0, -2])
    def test_invalid_max_concurrency(self, limit: int) -> None:
        with pytest.raises(CommandConfigurationError, match="max_concurrency"):
            GraphExecutor(max_concurrency=limit)


class TestPluginEvents:
    def test_events_dispatched(self, producer: Any) -> None:
        plugin = RecordingPlugin()
        source = ConstantCommand(producer(error=RuntimeError("boom")))
        ok_command = ConstantCommand(1)

        result = asyncio.run(
            execute_graph(source, ok_command, plugin_manager=_plugins(plugin))
        )

        assert sorted(plugin.settled) == sorted(
            [
                (source.command_id, "failed", "boom"),
                (ok_command.command_id, "done", None),
            ]
        )
        assert plugin.finished == [
            (False, {source.command_id: "failed", ok_command.command_id: "done"})
        ]
        assert result.warnings == []

    def test_plugin_failures_become_warnings(self) -> None:
        command = ConstantCommand(1)
        recording = RecordingPlugin()
        result = asyncio.run(
            execute_graph(command, plugin_manager=_plugins(FailingPlugin(), recording))
        )
        assert command.state is DONE
        assert result.ok is True
        assert result.warnings == ["Event dispatch failed for post_command_settled"]
        assert len(recording.finished) == 1


class TestFromSettings:
    def test_uses_executor_section(self) -> None:
        settings = CmdGraphSettings(
            executor={"max_concurrency": 2, "skip_dependents_on_failure": False},
            plugins={"enabled": False},
        )
        executor = GraphExecutor.from_settings(settings)
        assert executor.max_concurrency == 2
        assert executor.skip_dependents_on_failure is False
        assert executor.plugin_manager is None

    def test_loads_plugins_when_enabled(self) -> None:
        settings = CmdGraphSettings(plugins={"entry_point_group": "cmdgraph.tests.no-plugins"})
        executor = GraphExecutor.from_settings(settings)
        assert executor.plugin_manager is not None
        assert executor.plugin_manager.is_loaded

    def test_explicit_manager_wins(self) -> None:
        pm = PluginManager()
        executor = GraphExecutor.from_settings(CmdGraphSettings(), plugin_manager=pm)
        assert executor.plugin_manager is pm
        assert not pm.is_loaded
