"""DestructureCommand — extract a single property from an input's value."""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any

from cmdgraph.commands.base import Command, Computable, describe_command
from cmdgraph.domain.errors import CommandFailedError


class DestructureCommand(Command[Any]):
    """Return ``value[key]`` of the input's value."""

    def __init__(self, source: Computable[Any], key: Hashable, **kwargs: Any) -> None:
        super().__init__(source, **kwargs)
        self._source = source
        self._key = key

    @property
    def key(self) -> Hashable:
        return self._key

    async def _compute_result(self) -> Any:
        value = await self._source.compute()
        try:
            return value[self._key]
        except (KeyError, IndexError, TypeError) as exc:
            msg = f"Failed to access property {self._key!r} in {describe_command(self._source)}"
            raise CommandFailedError(msg) from exc
