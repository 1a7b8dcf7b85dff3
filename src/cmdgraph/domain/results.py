"""GraphResult and CommandReport — the outcome contract of a graph run.

INVARIANT: Reports are snapshots. They never hold references to the
commands themselves, only identities, states and error summaries.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from cmdgraph.domain.state import ComputableState


class CommandIssue(BaseModel):
    """Structured error payload within a CommandReport."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class CommandReport(BaseModel):
    """Terminal snapshot of a single command after a graph run."""

    model_config = {"frozen": True}

    command_id: str
    name: str
    state: ComputableState
    duration_ms: float | None = None
    inputs: list[str] = Field(default_factory=list)
    issue: CommandIssue | None = None


class GraphResult(BaseModel):
    """Universal return type of :class:`~cmdgraph.graph.executor.GraphExecutor`.

    Attributes:
        ok: Whether no command ended FAILED without a fallback consuming it.
        commands: One report per command, in topological order.
        warnings: Non-fatal issues (e.g. plugin dispatch failures).
        meta: Optional metadata (timing, counts).
    """

    model_config = {"frozen": True}

    ok: bool
    commands: list[CommandReport] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    meta: dict[str, Any] | None = None

    def report_for(self, command_id: str) -> CommandReport:
        """Return the report of *command_id*, raising KeyError if absent."""
        for report in self.commands:
            if report.command_id == command_id:
                return report
        raise KeyError(command_id)

    def with_state(self, state: ComputableState) -> list[CommandReport]:
        """Return all reports whose command ended in *state*."""
        return [report for report in self.commands if report.state == state]
