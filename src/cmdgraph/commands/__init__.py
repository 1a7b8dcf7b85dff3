"""Command layer — the lazy computation nodes and their combinators.

Commands may import from the domain layer only.
They must never import from graph, plugins, or config.
"""

from cmdgraph.commands.aggregate import AggregateCommand
from cmdgraph.commands.base import Command, CommandLogger, Computable
from cmdgraph.commands.constant import ConstantCommand
from cmdgraph.commands.destructure import DestructureCommand
from cmdgraph.commands.fallback import FallbackCommand, FallbackConfig
from cmdgraph.commands.guard import GuardCommand

__all__ = [
    "AggregateCommand",
    "Command",
    "CommandLogger",
    "Computable",
    "ConstantCommand",
    "DestructureCommand",
    "FallbackCommand",
    "FallbackConfig",
    "GuardCommand",
]
