"""FallbackCommand — substitute a configured value for a failed or skipped input.

This is the single sanctioned mechanism for turning an unsuccessful outcome
into a value. Substitution is not retry: the input is evaluated at most once
and its own terminal state is never altered by the wrapper.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from cmdgraph.commands.base import Command, Computable, describe_command
from cmdgraph.domain.errors import CommandConfigurationError, SkippedError, error_message
from cmdgraph.domain.state import UNSUCCESSFUL_STATES, ComputableState


class FallbackConfig(BaseModel):
    """Which input states trigger substitution, and the substitute itself."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    fallback_on: frozenset[ComputableState]
    fallback_value: Any = None

    @field_validator("fallback_on")
    @classmethod
    def _only_unsuccessful_states(
        cls, value: frozenset[ComputableState]
    ) -> frozenset[ComputableState]:
        if not value:
            raise ValueError("fallback_on must contain at least one state")
        invalid = value - UNSUCCESSFUL_STATES
        if invalid:
            names = ", ".join(sorted(str(state) for state in invalid))
            raise ValueError(f"fallback_on may only contain failed or skipped, got: {names}")
        return value


def observed_state(source: Computable[Any], error: BaseException) -> ComputableState:
    """Terminal state of *source* after its ``compute()`` raised *error*.

    Computables that did not record an unsuccessful state are classified by
    the exception: a skip for SkippedError, a failure for anything else.
    """
    state = getattr(source, "state", None)
    if state in UNSUCCESSFUL_STATES:
        return state  # type: ignore[return-value]
    if isinstance(error, SkippedError):
        return ComputableState.SKIPPED
    return ComputableState.FAILED


class FallbackCommand[T, F](Command[T | F]):
    """Return the input's value, or ``fallback_value`` if the input ended in a
    state listed in ``fallback_on``.

    Outcomes not covered by ``fallback_on`` are propagated unchanged: a failed
    input makes the wrapper fail with the very same exception.
    """

    tolerates_failed_inputs = True

    def __init__(
        self,
        source: Computable[T],
        *,
        fallback_on: Iterable[ComputableState],
        fallback_value: F,
        **kwargs: Any,
    ) -> None:
        try:
            self._config = FallbackConfig(
                fallback_on=frozenset(fallback_on),
                fallback_value=fallback_value,
            )
        except ValidationError as exc:
            raise CommandConfigurationError(f"Invalid fallback configuration: {exc}") from exc
        super().__init__(source, **kwargs)
        self._source = source

    @property
    def config(self) -> FallbackConfig:
        return self._config

    async def _compute_result(self) -> T | F:
        try:
            return await self._source.compute()
        except (Exception, asyncio.CancelledError) as exc:
            state = observed_state(self._source, exc)
            if state not in self._config.fallback_on:
                raise
            self._log(
                "info",
                "command.fallback",
                command=self.command_id,
                input=describe_command(self._source),
                input_state=str(state),
                error=error_message(exc),
            )
            return self._config.fallback_value
