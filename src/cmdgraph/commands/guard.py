"""GuardCommand — skip everything downstream when a value is unusable.

Used to stop an upload pipeline early (e.g. no native tests were executed)
without reporting the situation as a failure.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from cmdgraph.commands.base import Command, Computable
from cmdgraph.domain.errors import SkippedError


class GuardCommand[T](Command[T]):
    """Pass the input's value through if *predicate* accepts it, else skip."""

    def __init__(
        self,
        source: Computable[T],
        predicate: Callable[[T], bool],
        message: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(source, **kwargs)
        self._source = source
        self._predicate = predicate
        self._message = message

    async def _compute_result(self) -> T:
        value = await self._source.compute()
        if not self._predicate(value):
            raise SkippedError(self._message)
        return value
