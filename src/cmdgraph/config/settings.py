"""Layered settings for applications embedding cmdgraph.

Sources, strongest first: keyword overrides given to
:meth:`CmdGraphSettings.load`, ``CMDGRAPH_*`` environment variables (``__``
separates section and key, e.g. ``CMDGRAPH_EXECUTOR__MAX_CONCURRENCY``), the
discovered ``cmdgraph.toml``, and finally the defaults of the section models.
"""

from __future__ import annotations

import threading
import tomllib
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from cmdgraph.config.discovery import find_config
from cmdgraph.config.models import ExecutorConfig, LoggingConfig, PluginsConfig
from cmdgraph.domain.errors import CommandConfigurationError


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise CommandConfigurationError(f"Invalid TOML in {path}: {exc}") from exc


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by one TOML document; tables map to sections."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self.path = path
        self._document: dict[str, Any] = (
            _read_toml(path) if path is not None and path.is_file() else {}
        )

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        if field_name in self._document:
            return self._document[field_name], field_name, True
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self._document)


# pydantic-settings builds its sources inside the constructor, so the file
# chosen by load() reaches settings_customise_sources through this slot.
_active = threading.local()


@contextmanager
def _toml_file(path: Path | None) -> Iterator[None]:
    _active.path = path
    try:
        yield
    finally:
        _active.path = None


class CmdGraphSettings(BaseSettings):
    """Frozen settings for logging, graph execution and plugin loading.

    Attributes:
        config_path: The TOML file the settings were read from, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CMDGRAPH_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_active, "path", None)),
        )

    @classmethod
    def load(
        cls,
        *,
        config_path: str | Path | None = None,
        start: Path | None = None,
        **overrides: Any,
    ) -> CmdGraphSettings:
        """Resolve the TOML file and build settings from every source.

        An explicit *config_path* that does not exist means "no file"; it does
        not fall back to discovery from *start*.
        """
        path: Path | None
        if config_path is not None:
            candidate = Path(config_path)
            path = candidate if candidate.is_file() else None
        else:
            path = find_config(start)

        with _toml_file(path):
            return cls(config_path=path, **overrides)
