"""cmdgraph — lazy, memoizing, fallback-aware asynchronous command graphs."""

from cmdgraph.commands import (
    AggregateCommand,
    Command,
    Computable,
    ConstantCommand,
    DestructureCommand,
    FallbackCommand,
    FallbackConfig,
    GuardCommand,
)
from cmdgraph.domain.errors import (
    CommandConfigurationError,
    CommandError,
    CommandFailedError,
    GraphError,
    InvalidTransitionError,
    SkippedError,
)
from cmdgraph.domain.results import CommandIssue, CommandReport, GraphResult
from cmdgraph.domain.state import ComputableState
from cmdgraph.graph import CommandGraph, GraphExecutor, execute_graph

__version__ = "0.1.0"

__all__ = [
    "AggregateCommand",
    "Command",
    "CommandConfigurationError",
    "CommandError",
    "CommandFailedError",
    "CommandGraph",
    "CommandIssue",
    "CommandReport",
    "Computable",
    "ComputableState",
    "ConstantCommand",
    "DestructureCommand",
    "FallbackCommand",
    "FallbackConfig",
    "GraphError",
    "GraphExecutor",
    "GraphResult",
    "GuardCommand",
    "InvalidTransitionError",
    "SkippedError",
    "execute_graph",
]
