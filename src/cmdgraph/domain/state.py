"""Command lifecycle states and the transitions between them.

Every command starts in ``INITIAL``, moves to ``PENDING`` when its value is
first requested, and settles in exactly one terminal state.

INVARIANT: Terminal states are sticky. Once a command is DONE, FAILED or
SKIPPED, neither its state nor its cached outcome ever changes again.
"""

from __future__ import annotations

from enum import StrEnum


class ComputableState(StrEnum):
    """Lifecycle position of a command."""

    INITIAL = "initial"
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATES: frozenset[ComputableState] = frozenset(
    {ComputableState.DONE, ComputableState.FAILED, ComputableState.SKIPPED}
)

# States a fallback may be configured to substitute.
UNSUCCESSFUL_STATES: frozenset[ComputableState] = frozenset(
    {ComputableState.FAILED, ComputableState.SKIPPED}
)

# --- Transition map ---

STATE_TRANSITIONS: dict[ComputableState, list[ComputableState]] = {
    ComputableState.INITIAL: [
        ComputableState.PENDING,
        ComputableState.FAILED,  # forced before evaluation
        ComputableState.SKIPPED,  # forced before evaluation
    ],
    ComputableState.PENDING: [
        ComputableState.DONE,
        ComputableState.FAILED,
        ComputableState.SKIPPED,
    ],
    ComputableState.DONE: [],
    ComputableState.FAILED: [],
    ComputableState.SKIPPED: [],
}


def is_terminal(state: ComputableState) -> bool:
    """Whether *state* is one of the sticky terminal states."""
    return state in TERMINAL_STATES


def is_valid_transition(current: ComputableState, target: ComputableState) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    return target in STATE_TRANSITIONS.get(current, [])
