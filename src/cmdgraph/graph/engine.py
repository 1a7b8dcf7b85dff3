"""CommandGraph — NetworkX view of a command DAG.

Vertices are commands, edges point from an input to the command consuming
it. Graphs built with :meth:`CommandGraph.from_commands` mirror the input
references exactly; :meth:`CommandGraph.connect` can add further ordering
constraints but never a cycle.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, Literal

import networkx as nx

from cmdgraph.commands.base import Command, describe_command
from cmdgraph.domain.errors import GraphError

type _Graph = nx.DiGraph


class CommandGraph:
    """Directed acyclic graph of commands."""

    def __init__(self) -> None:
        self._graph: _Graph = nx.DiGraph()

    @classmethod
    def from_commands(cls, *roots: Command[Any]) -> CommandGraph:
        """Build the graph of *roots* and, transitively, all their inputs.

        Shared inputs appear once. Inputs that are not :class:`Command`
        instances are evaluated by their consumers but are not vertices.
        """
        graph = cls()
        for root in roots:
            graph._place_tree(root)
        return graph

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def place(self, command: Command[Any]) -> None:
        """Add *command* as an isolated vertex."""
        if command in self._graph:
            raise GraphError(f"Duplicate vertex detected: {describe_command(command)}")
        self._graph.add_node(command)

    def connect(self, source: Command[Any], destination: Command[Any]) -> None:
        """Add an edge so that *destination* runs after *source*."""
        if source not in self._graph:
            raise GraphError("Failed to connect vertices: the source vertex does not exist")
        if destination not in self._graph:
            raise GraphError("Failed to connect vertices: the destination vertex does not exist")
        label = f"{describe_command(source)} -> {describe_command(destination)}"
        if source is destination or nx.has_path(self._graph, destination, source):
            raise GraphError(f"Failed to connect vertices {label}: cycle detected")
        if self._graph.has_edge(source, destination):
            raise GraphError(f"Failed to connect vertices {label}: duplicate edge detected")
        self._graph.add_edge(source, destination)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def commands(self) -> list[Command[Any]]:
        return list(self._graph.nodes)

    def edges(self) -> list[tuple[Command[Any], Command[Any]]]:
        return list(self._graph.edges)

    def size(self, kind: Literal["vertices", "edges"] = "vertices") -> int:
        """Return the vertex or edge set cardinality."""
        if kind == "edges":
            return self._graph.number_of_edges()
        return self._graph.number_of_nodes()

    def predecessors(self, command: Command[Any]) -> list[Command[Any]]:
        """Commands *command* waits for."""
        self._require(command)
        return list(self._graph.predecessors(command))

    def successors(self, command: Command[Any]) -> list[Command[Any]]:
        """Commands waiting for *command*."""
        self._require(command)
        return list(self._graph.successors(command))

    def find(self, predicate: Callable[[Command[Any]], bool]) -> Command[Any] | None:
        """Return the first command (in insertion order) matching *predicate*."""
        for command in self._graph.nodes:
            if predicate(command):
                return command
        return None

    def roots(self) -> list[Command[Any]]:
        """Commands nothing else depends on."""
        return [c for c in self._graph.nodes if self._graph.out_degree(c) == 0]

    def topological_order(self) -> list[Command[Any]]:
        """All commands, each one after every command it depends on."""
        return list(nx.topological_sort(self._graph))

    def __contains__(self, command: object) -> bool:
        return command in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __iter__(self) -> Iterator[Command[Any]]:
        return iter(self._graph.nodes)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require(self, command: Command[Any]) -> None:
        if command not in self._graph:
            raise GraphError(f"Unknown vertex: {describe_command(command)}")

    def _place_tree(self, command: Command[Any]) -> None:
        # Inputs are placed before their consumers so insertion order is
        # already a valid evaluation order.
        if command in self._graph:
            return
        upstream = [source for source in command.inputs if isinstance(source, Command)]
        for source in upstream:
            self._place_tree(source)
        self.place(command)
        for source in upstream:
            if not self._graph.has_edge(source, command):
                self.connect(source, command)
