"""Error taxonomy for command evaluation and graph construction.

Three kinds of problems exist:
- evaluation failures raised by a command's own logic (any exception, or
  :class:`CommandFailedError` for failures detected by built-in commands),
- intentional skips (:class:`SkippedError`), which drive the SKIPPED state,
- programming errors detected at construction time
  (:class:`CommandConfigurationError`, :class:`GraphError`) or on illegal
  state manipulation (:class:`InvalidTransitionError`).

Producer exceptions are never wrapped: the cached exception is the one the
producer raised.
"""

from __future__ import annotations


class CommandError(Exception):
    """Base class for all errors raised by cmdgraph itself."""


class SkippedError(CommandError):
    """Raised to signal that a command intentionally did not produce a value."""


class CommandFailedError(CommandError):
    """Raised when a built-in command detects a failure of its own."""


class CommandConfigurationError(CommandError, ValueError):
    """A command or combinator was constructed with invalid arguments."""


class InvalidTransitionError(CommandError, RuntimeError):
    """A state change or result access violated the lifecycle contract."""


class GraphError(CommandError, ValueError):
    """A command graph operation referenced unknown vertices or broke acyclicity."""


def error_message(error: BaseException) -> str:
    """Return a human readable message for *error*, falling back to its type name.

    Never raises, even for exceptions whose ``__str__`` is broken.
    """
    try:
        message = str(error)
    except Exception:
        message = ""
    if message:
        return message
    return type(error).__name__
