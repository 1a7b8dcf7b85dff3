"""Shared pytest fixtures and test helpers for cmdgraph tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from structlog.testing import CapturingLogger


class CountingProducer:
    """Async zero-argument producer that records how often it ran."""

    def __init__(
        self,
        value: Any = None,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.value = value
        self.error = error
        self.delay = delay
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.value


class ExplodingLogger:
    """Logger collaborator whose every method raises."""

    def debug(self, event: str, **kwargs: Any) -> None:
        raise RuntimeError("log sink unavailable")

    info = debug
    warning = debug


def transitions(logger: CapturingLogger) -> list[tuple[str, str]]:
    """Extract ``(old_state, new_state)`` pairs from captured transition events."""
    return [
        (call.kwargs["old_state"], call.kwargs["new_state"])
        for call in logger.calls
        if call.args == ("command.transition",)
    ]


@pytest.fixture
def capturing_logger() -> CapturingLogger:
    """Recording logger collaborator (structlog's CapturingLogger)."""
    return CapturingLogger()


@pytest.fixture
def producer() -> type[CountingProducer]:
    """Factory for counting producers: ``producer(42)``, ``producer(error=exc)``."""
    return CountingProducer


@pytest.fixture
def exploding_logger() -> ExplodingLogger:
    return ExplodingLogger()


@pytest.fixture
def transition_log() -> Any:
    """The :func:`transitions` helper, as a fixture."""
    return transitions
