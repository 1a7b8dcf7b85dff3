"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, cmdgraph.toml only contains overrides.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoggingConfig(BaseModel):
    """[logging] section."""

    model_config = {"frozen": True}

    verbose: bool = False
    log_json: bool = False


class ExecutorConfig(BaseModel):
    """[executor] section."""

    model_config = {"frozen": True}

    max_concurrency: int | None = Field(default=None, ge=1)
    skip_dependents_on_failure: bool = True


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    entry_point_group: str = "cmdgraph.plugins"
