"""AggregateCommand — merge the values of several named inputs.

Every input settles before the aggregate does. Failures dominate skips: the
aggregate fails with the first failed input's error (declaration order),
otherwise it is skipped with the first skipped input's error. Wrap individual
inputs in a FallbackCommand to tolerate their failure.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from cmdgraph.commands.base import Command, Computable
from cmdgraph.domain.errors import CommandConfigurationError, SkippedError


class AggregateCommand[R](Command[R]):
    """Compute all *inputs* concurrently and combine them.

    Without *combine* the result is a ``dict`` of input name to value, in
    declaration order. With *combine* that dict is passed to it and its return
    value becomes the result; exceptions raised by *combine* fail the command.
    """

    def __init__(
        self,
        inputs: Mapping[str, Computable[Any]],
        *,
        combine: Callable[[dict[str, Any]], R] | None = None,
        **kwargs: Any,
    ) -> None:
        if not inputs:
            raise CommandConfigurationError("AggregateCommand requires at least one input")
        super().__init__(*inputs.values(), **kwargs)
        self._named: dict[str, Computable[Any]] = dict(inputs)
        self._combine = combine

    @property
    def named_inputs(self) -> dict[str, Computable[Any]]:
        return dict(self._named)

    async def _compute_result(self) -> R:
        outcomes = await asyncio.gather(*(_settle_input(s) for s in self._named.values()))
        values: dict[str, Any] = {}
        first_skip: SkippedError | None = None
        for name, (value, error) in zip(self._named, outcomes, strict=True):
            if isinstance(error, SkippedError):
                first_skip = first_skip or error
            elif error is not None:
                raise error
            else:
                values[name] = value
        if first_skip is not None:
            raise first_skip
        if self._combine is None:
            return values  # type: ignore[return-value]
        return self._combine(values)


async def _settle_input(source: Computable[Any]) -> tuple[Any, BaseException | None]:
    """Await *source* and return ``(value, None)`` or ``(None, error)``.

    The error is the input's own cached exception, cancellations included.
    """
    try:
        return await source.compute(), None
    except (Exception, asyncio.CancelledError) as exc:
        return None, exc
