"""Command — the lazy, memoizing, single-flight computation node.

A command produces one value of type ``T`` the first time it is asked to
``compute()``. The evaluation runs as an asyncio task shared by every caller,
concurrent or late, so the underlying work happens at most once per instance
regardless of fan-in. The outcome is cached: the value on success, the raised
exception on failure or skip.

INVARIANT: A command is the sole mutator of its own state. Combinators only
ever read their inputs through ``compute()`` and ``state``.
INVARIANT: Logging failures never change an evaluation outcome.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Protocol, runtime_checkable

import structlog

from cmdgraph.domain.errors import (
    CommandConfigurationError,
    CommandFailedError,
    InvalidTransitionError,
    SkippedError,
    error_message,
)
from cmdgraph.domain.state import (
    UNSUCCESSFUL_STATES,
    ComputableState,
    is_terminal,
    is_valid_transition,
)

logger = logging.getLogger(__name__)

_command_counter = itertools.count(1)


class CommandLogger(Protocol):
    """Structured logger collaborator (structlog bound loggers satisfy it)."""

    def debug(self, event: str, **kwargs: Any) -> Any: ...

    def info(self, event: str, **kwargs: Any) -> Any: ...

    def warning(self, event: str, **kwargs: Any) -> Any: ...


@runtime_checkable
class Computable[T](Protocol):
    """Anything that exposes a lifecycle state and an asynchronous value."""

    @property
    def state(self) -> ComputableState: ...

    async def compute(self) -> T: ...


def describe_command(command: object) -> str:
    """Return the identity used in log events and error messages."""
    command_id = getattr(command, "command_id", None)
    if isinstance(command_id, str):
        return command_id
    return repr(command)


def default_logger() -> CommandLogger:
    return structlog.get_logger("cmdgraph.commands")


class Command[T](ABC):
    """Abstract base for every graph node.

    Subclasses implement :meth:`_compute_result`. Inputs are passed to the
    base constructor so the graph engine can discover edges; they must be
    constructed before the command that consumes them, which keeps every
    graph acyclic by construction.

    Usage::

        class UppercaseCommand(Command[str]):
            def __init__(self, text: Computable[str], **kwargs: Any) -> None:
                super().__init__(text, **kwargs)
                self._text = text

            async def _compute_result(self) -> str:
                return (await self._text.compute()).upper()
    """

    # Whether the graph executor should still evaluate this command when one
    # of its predecessors failed or was skipped.
    tolerates_failed_inputs: ClassVar[bool] = False

    def __init__(
        self,
        *inputs: Computable[Any],
        logger: CommandLogger | None = None,
        name: str | None = None,
    ) -> None:
        for candidate in inputs:
            if not isinstance(candidate, Computable):
                msg = f"{type(self).__name__} received an input that is not a command: {candidate!r}"
                raise CommandConfigurationError(msg)
        self._inputs: tuple[Computable[Any], ...] = tuple(inputs)
        self._logger: CommandLogger = logger if logger is not None else default_logger()
        self._name = name or type(self).__name__
        self._command_id = f"{self._name}#{next(_command_counter)}"
        self._state = ComputableState.INITIAL
        self._value: T | None = None
        self._failure: BaseException | None = None
        self._task: asyncio.Future[None] | None = None
        self._started: float | None = None
        self._finished: float | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ComputableState:
        return self._state

    @property
    def inputs(self) -> tuple[Computable[Any], ...]:
        return self._inputs

    @property
    def name(self) -> str:
        return self._name

    @property
    def command_id(self) -> str:
        """Process-unique identity, e.g. ``"ConstantCommand#12"``."""
        return self._command_id

    @property
    def logger(self) -> CommandLogger:
        return self._logger

    @property
    def failure(self) -> BaseException | None:
        """The cached exception of a FAILED or SKIPPED command, else None."""
        return self._failure

    @property
    def duration_ms(self) -> float | None:
        """Wall time of the evaluation, or None if it never ran to completion."""
        if self._started is None or self._finished is None:
            return None
        return (self._finished - self._started) * 1000

    async def compute(self) -> T:
        """Return the command's value, evaluating it on the first request only.

        Concurrent callers share the in-flight evaluation. Once terminal, the
        cached value is returned (or the cached exception re-raised) without
        any further work.
        """
        if is_terminal(self._state):
            return self._replay()
        if self._task is None:
            self._started = time.perf_counter()
            self._transition(ComputableState.PENDING)
            self._task = asyncio.ensure_future(self._evaluate())
        # Shielded so that one cancelled caller cannot cancel the shared evaluation.
        await asyncio.shield(self._task)
        return self._replay()

    def result(self) -> T:
        """Return the cached value of a DONE command without awaiting."""
        if self._state is not ComputableState.DONE:
            msg = f"{self._command_id} has no result in state {self._state}"
            raise InvalidTransitionError(msg)
        return self._value  # type: ignore[return-value]

    def set_state(self, state: ComputableState, error: Exception | None = None) -> None:
        """Force a never-evaluated command into FAILED or SKIPPED.

        The command will not evaluate afterwards; every ``compute()`` call
        re-raises *error* (or a generated error describing the forced state).
        """
        if self._state is not ComputableState.INITIAL or state not in UNSUCCESSFUL_STATES:
            msg = f"Cannot force {self._command_id} from {self._state} to {state}"
            raise InvalidTransitionError(msg)
        if error is None:
            if state is ComputableState.SKIPPED:
                error = SkippedError(f"{self._command_id} was skipped before evaluation")
            else:
                error = CommandFailedError(f"{self._command_id} was marked as failed")
        self._failure = error
        self._transition(state, forced=True)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._command_id} state={self._state}>"

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _compute_result(self) -> T:
        """Produce the command's value. Raise SkippedError to skip."""

    def _log(self, level: str, event: str, **fields: Any) -> None:
        """Emit a structured event through the injected logger, never raising."""
        try:
            getattr(self._logger, level)(event, **fields)
        except Exception:
            logger.debug("Logging %s for %s failed", event, self._command_id, exc_info=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _evaluate(self) -> None:
        # The shared task completes normally for every command outcome;
        # callers read that outcome from the cache.
        try:
            value = await self._compute_result()
        except SkippedError as exc:
            self._settle(ComputableState.SKIPPED, failure=exc)
        except (Exception, asyncio.CancelledError) as exc:
            self._settle(ComputableState.FAILED, failure=exc)
        except BaseException as exc:
            self._settle(ComputableState.FAILED, failure=exc)
            raise
        else:
            self._value = value
            self._settle(ComputableState.DONE)

    def _settle(self, state: ComputableState, *, failure: BaseException | None = None) -> None:
        self._finished = time.perf_counter()
        self._failure = failure
        self._transition(state)

    def _replay(self) -> T:
        if self._state is ComputableState.DONE:
            return self._value  # type: ignore[return-value]
        if self._failure is None:
            msg = f"{self._command_id} has no outcome in state {self._state}"
            raise InvalidTransitionError(msg)
        raise self._failure

    def _transition(self, new_state: ComputableState, **context: Any) -> None:
        old_state = self._state
        if not is_valid_transition(old_state, new_state):
            msg = f"Invalid transition for {self._command_id}: {old_state} -> {new_state}"
            raise InvalidTransitionError(msg)
        self._state = new_state

        fields: dict[str, Any] = {
            "command": self._command_id,
            "old_state": str(old_state),
            "new_state": str(new_state),
            **context,
        }
        if is_terminal(new_state):
            duration = self.duration_ms
            if duration is not None:
                fields["duration_ms"] = round(duration, 2)
            if self._failure is not None:
                fields["error"] = error_message(self._failure)
        self._log("debug", "command.transition", **fields)
