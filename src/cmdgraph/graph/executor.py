"""GraphExecutor — evaluate every command of a graph in dependency order.

Each command gets its own task that first waits for all of its graph
predecessors to settle. Commands whose predecessors failed or were skipped
are themselves skipped instead of evaluated, unless they tolerate failed
inputs (fallbacks). The outcome of every command stays cached on the
command; the executor only orchestrates and reports.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from cmdgraph.commands.base import Command
from cmdgraph.domain.errors import CommandConfigurationError, SkippedError, error_message
from cmdgraph.domain.results import CommandIssue, CommandReport, GraphResult
from cmdgraph.domain.state import UNSUCCESSFUL_STATES, ComputableState, is_terminal
from cmdgraph.graph.engine import CommandGraph

if TYPE_CHECKING:
    from cmdgraph.config.settings import CmdGraphSettings
    from cmdgraph.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class GraphExecutor:
    """Run command graphs to completion.

    Parameters:
        plugin_manager: Receives ``post_command_settled`` and
            ``post_graph_executed`` events. None disables dispatch.
        max_concurrency: Upper bound on simultaneous evaluations.
        skip_dependents_on_failure: Skip commands downstream of a failed or
            skipped command instead of letting them propagate the failure.
    """

    def __init__(
        self,
        *,
        plugin_manager: PluginManager | None = None,
        max_concurrency: int | None = None,
        skip_dependents_on_failure: bool = True,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            msg = f"max_concurrency must be at least 1, got {max_concurrency}"
            raise CommandConfigurationError(msg)
        self._pm = plugin_manager
        self._max_concurrency = max_concurrency
        self._skip_dependents = skip_dependents_on_failure

    @classmethod
    def from_settings(
        cls,
        settings: CmdGraphSettings,
        *,
        plugin_manager: PluginManager | None = None,
    ) -> GraphExecutor:
        """Build an executor from the ``[executor]`` and ``[plugins]`` sections.

        When plugins are enabled and no manager is given, one is created and
        loaded from the configured entry point group.
        """
        if plugin_manager is None and settings.plugins.enabled:
            from cmdgraph.plugins.manager import PluginManager

            plugin_manager = PluginManager()
            plugin_manager.discover_and_load(settings.plugins.entry_point_group)
        return cls(
            plugin_manager=plugin_manager,
            max_concurrency=settings.executor.max_concurrency,
            skip_dependents_on_failure=settings.executor.skip_dependents_on_failure,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def plugin_manager(self) -> PluginManager | None:
        return self._pm

    @property
    def max_concurrency(self) -> int | None:
        return self._max_concurrency

    @property
    def skip_dependents_on_failure(self) -> bool:
        return self._skip_dependents

    async def execute(self, graph: CommandGraph) -> GraphResult:
        """Settle every command of *graph* and report the outcomes."""
        started = time.perf_counter()
        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        warnings: list[str] = []

        order = graph.topological_order()
        tasks: dict[Command[Any], asyncio.Future[None]] = {}
        for command in order:
            waits = [tasks[source] for source in graph.predecessors(command)]
            tasks[command] = asyncio.ensure_future(
                self._run(graph, command, waits, semaphore, warnings)
            )
        if tasks:
            await asyncio.gather(*tasks.values())

        reports = [self._report(graph, command) for command in order]
        ok = not any(self._is_unhandled_failure(graph, command) for command in order)
        self._dispatch_event(
            "post_graph_executed",
            {"ok": ok, "states": {r.command_id: str(r.state) for r in reports}},
            warnings,
        )
        duration_ms = (time.perf_counter() - started) * 1000
        return GraphResult(
            ok=ok,
            commands=reports,
            warnings=warnings,
            meta={"duration_ms": round(duration_ms, 2), "count": len(reports)},
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(
        self,
        graph: CommandGraph,
        command: Command[Any],
        waits: list[asyncio.Future[None]],
        semaphore: asyncio.Semaphore | None,
        warnings: list[str],
    ) -> None:
        if waits:
            await asyncio.gather(*waits)

        blocked = [p for p in graph.predecessors(command) if p.state in UNSUCCESSFUL_STATES]
        if (
            blocked
            and self._skip_dependents
            and command.state is ComputableState.INITIAL
            and not command.tolerates_failed_inputs
        ):
            ids = ", ".join(p.command_id for p in blocked)
            command.set_state(
                ComputableState.SKIPPED,
                SkippedError(f"Skipping {command.command_id}: {ids} did not complete"),
            )
        else:
            await self._evaluate(command, semaphore)

        failure = command.failure
        self._dispatch_event(
            "post_command_settled",
            {
                "command_id": command.command_id,
                "name": command.name,
                "state": str(command.state),
                "error": error_message(failure) if failure is not None else None,
            },
            warnings,
        )

    @staticmethod
    async def _evaluate(command: Command[Any], semaphore: asyncio.Semaphore | None) -> None:
        try:
            if semaphore is None:
                await command.compute()
            else:
                async with semaphore:
                    await command.compute()
        except asyncio.CancelledError:
            # Only a settled command owns the cancellation; otherwise the run
            # itself is being cancelled.
            if not is_terminal(command.state):
                raise
            logger.debug("Command %s did not complete", command.command_id, exc_info=True)
        except Exception:
            # The outcome is cached on the command and reported from there.
            logger.debug("Command %s did not complete", command.command_id, exc_info=True)

    @staticmethod
    def _is_unhandled_failure(graph: CommandGraph, command: Command[Any]) -> bool:
        # A failure consumed by a fallback successor has been dealt with.
        if command.state is not ComputableState.FAILED:
            return False
        return not any(s.tolerates_failed_inputs for s in graph.successors(command))

    @staticmethod
    def _report(graph: CommandGraph, command: Command[Any]) -> CommandReport:
        failure = command.failure
        issue: CommandIssue | None = None
        if failure is not None:
            issue = CommandIssue(
                code=str(command.state),
                message=error_message(failure),
                detail={"type": type(failure).__name__},
            )
        duration = command.duration_ms
        return CommandReport(
            command_id=command.command_id,
            name=command.name,
            state=command.state,
            duration_ms=round(duration, 2) if duration is not None else None,
            inputs=[source.command_id for source in graph.predecessors(command)],
            issue=issue,
        )

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle event. No-op without a plugin manager."""
        if self._pm is None:
            return
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            return
        try:
            hook_fn(**payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")


async def execute_graph(
    *roots: Command[Any],
    plugin_manager: PluginManager | None = None,
    max_concurrency: int | None = None,
    skip_dependents_on_failure: bool = True,
) -> GraphResult:
    """Build the graph of *roots* and execute it."""
    executor = GraphExecutor(
        plugin_manager=plugin_manager,
        max_concurrency=max_concurrency,
        skip_dependents_on_failure=skip_dependents_on_failure,
    )
    return await executor.execute(CommandGraph.from_commands(*roots))
