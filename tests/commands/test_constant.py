"""Tests for ConstantCommand."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from cmdgraph.commands.constant import ConstantCommand
from cmdgraph.domain.errors import SkippedError
from cmdgraph.domain.state import ComputableState


class TestPlainValues:
    def test_returns_value(self) -> None:
        command = ConstantCommand("CYP-123")
        assert asyncio.run(command.compute()) == "CYP-123"
        assert command.state is ComputableState.DONE

    def test_none_is_a_value(self) -> None:
        command = ConstantCommand(None)
        assert asyncio.run(command.compute()) is None
        assert command.state is ComputableState.DONE

    def test_returns_identical_object(self) -> None:
        payload: dict[str, Any] = {"fields": []}
        command = ConstantCommand(payload)
        assert asyncio.run(command.compute()) is payload

    def test_has_no_inputs(self) -> None:
        assert ConstantCommand(1).inputs == ()

    def test_awaitable_value_is_awaited(self) -> None:
        async def scenario() -> int:
            future: asyncio.Future[int] = asyncio.get_running_loop().create_future()
            future.set_result(5)
            return await ConstantCommand(future).compute()

        assert asyncio.run(scenario()) == 5


class TestProducers:
    def test_async_producer_runs_once(self, producer: Any) -> None:
        fetch = producer(["summary", "labels"])
        command = ConstantCommand(fetch)

        async def scenario() -> list[Any]:
            return await asyncio.gather(*(command.compute() for _ in range(4)))

        results = asyncio.run(scenario())
        assert results == [["summary", "labels"]] * 4
        assert fetch.calls == 1

    def test_sync_producer(self) -> None:
        calls: list[int] = []

        def make() -> int:
            calls.append(1)
            return 99

        command = ConstantCommand(make)
        assert asyncio.run(command.compute()) == 99
        assert asyncio.run(command.compute()) == 99
        assert calls == [1]

    def test_lazy_until_computed(self, producer: Any) -> None:
        fetch = producer("late")
        command = ConstantCommand(fetch)
        assert fetch.calls == 0
        assert command.state is ComputableState.INITIAL

    def test_producer_error_fails(self, producer: Any) -> None:
        error = ConnectionError("jira unreachable")
        fetch = producer(error=error)
        command = ConstantCommand(fetch)
        with pytest.raises(ConnectionError) as exc_info:
            asyncio.run(command.compute())
        assert exc_info.value is error
        assert command.state is ComputableState.FAILED
        with pytest.raises(ConnectionError):
            asyncio.run(command.compute())
        assert fetch.calls == 1

    def test_sync_producer_error_fails(self) -> None:
        def broken() -> int:
            raise ValueError("no value")

        command = ConstantCommand(broken)
        with pytest.raises(ValueError, match="no value"):
            asyncio.run(command.compute())
        assert command.state is ComputableState.FAILED

    def test_producer_skip(self, producer: Any) -> None:
        command = ConstantCommand(producer(error=SkippedError("feature disabled")))
        with pytest.raises(SkippedError):
            asyncio.run(command.compute())
        assert command.state is ComputableState.SKIPPED

    def test_wrapped_callable_is_kept_as_value(self) -> None:
        def handler() -> str:
            return "called"

        command = ConstantCommand(lambda: handler)
        assert asyncio.run(command.compute()) is handler
