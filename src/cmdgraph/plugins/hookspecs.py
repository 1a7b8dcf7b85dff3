"""Pluggy hook specifications for cmdgraph evaluation events.

Both events are dispatched by :class:`~cmdgraph.graph.executor.GraphExecutor`
after the fact; plugins observe outcomes, they cannot change them.
"""

from __future__ import annotations

import pluggy

PROJECT_NAME = "cmdgraph"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class CmdGraphHookSpec:
    """Hook specifications for the cmdgraph plugin system."""

    @hookspec
    def post_command_settled(
        self,
        command_id: str,
        name: str,
        state: str,
        error: str | None,
    ) -> None:
        """Called once per command after it reached a terminal state."""

    @hookspec
    def post_graph_executed(
        self,
        ok: bool,
        states: dict[str, str],
    ) -> None:
        """Called after every command of an executed graph settled."""
