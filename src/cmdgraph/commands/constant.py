"""ConstantCommand — leaf command wrapping a known value or a producer of one."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from cmdgraph.commands.base import Command

type Producer[T] = Callable[[], T | Awaitable[T]]


class ConstantCommand[T](Command[T]):
    """Resolve a value exactly once.

    *value* may be a plain value, an awaitable, or a zero-argument producer
    (sync or async). A callable is always treated as a producer; to hold a
    callable as the constant itself, wrap it: ``ConstantCommand(lambda: fn)``.
    A producer that raises makes the command FAILED (SKIPPED for
    :class:`~cmdgraph.domain.errors.SkippedError`).
    """

    def __init__(self, value: T | Awaitable[T] | Producer[T], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._source = value

    async def _compute_result(self) -> T:
        produced: Any = self._source() if callable(self._source) else self._source
        if inspect.isawaitable(produced):
            return await produced
        return produced
