"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``EMX_*`` prefix (``EMX_AGENT_NAME``, ``EMX_NOTE_HOME``, ...)
  3. TOML file    — ``capsactl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the walk-up discovery from :mod:`capsactl.config.discovery`.

The object is built once per process and handed to every service; the
core never reads the environment itself.
"""

from __future__ import annotations

import threading
import tomllib
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from capsactl.config.discovery import find_config
from capsactl.config.models import ResolveConfig, TaskConfig

DEFAULT_NOTES_DIRNAME = ".emx-notes"
COMMENT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``capsactl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class CapsaSettings(BaseSettings):
    """Unified settings for the capsactl CLI.

    Merges CLI flags, environment variables, TOML config sections,
    and code-baked defaults into a single frozen object. Stored on the
    :class:`~capsactl.commands._context.AppContext` at the CLI root.

    Attributes:
        agent_name: ``EMX_AGENT_NAME``; claims tasks as ``@name`` and
            scopes capsa names. None means an anonymous context.
        task_timestamp: ``EMX_TASK_TIMESTAMP``; fixed comment timestamp.
        taskfile: ``EMX_TASKFILE``; task file name relative to the capsa.
        note_home: ``EMX_NOTE_HOME``; directory holding every capsa.
        note_default: ``EMX_NOTE_DEFAULT``; name of the default capsa.
        capsa_root: Explicit capsa directory, bypassing the locator.
        caps: Capsa name from ``--caps``.
        global_scope: ``--global``; disables agent prefixing.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "EMX_",
        "env_nested_delimiter": "__",
    }

    # --- Environment ---
    agent_name: str | None = None
    task_timestamp: str | None = None
    taskfile: str | None = None
    note_home: Path | None = None
    note_default: str | None = None

    # --- Capsa selection ---
    config_path: Path | None = None
    capsa_root: Path | None = None
    caps: str | None = None
    global_scope: bool = False

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    task: TaskConfig = Field(default_factory=TaskConfig)
    resolve: ResolveConfig = Field(default_factory=ResolveConfig)

    # Retained for type-checker visibility; not used at runtime.
    _toml_path: ClassVar[Path | None] = None

    @field_validator(
        "agent_name", "task_timestamp", "taskfile", "note_home", "note_default", "caps",
        mode="before",
    )
    @classmethod
    def _empty_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        **cli_flags: Any,
    ) -> CapsaSettings:
        """Construct settings from CLI invocation.

        Discovers ``capsactl.toml`` via walk-up (or explicit *config_path*)
        and merges CLI flags as highest-priority overrides. Flags left at
        None are dropped so env vars still apply.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config()

        overrides = {key: value for key, value in cli_flags.items() if value is not None}

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None

    # --- Derived values ---

    @property
    def agent_marker(self) -> str | None:
        """``@name`` for the configured agent, or None when anonymous."""
        return f"@{self.agent_name}" if self.agent_name else None

    @property
    def task_filename(self) -> str:
        return self.taskfile or self.task.filename

    @property
    def notes_home(self) -> Path:
        return self.note_home or Path.home() / DEFAULT_NOTES_DIRNAME

    def comment_timestamp(self, now: datetime | None = None) -> str:
        """Timestamp for a new comment line (fixed override or local time)."""
        if self.task_timestamp:
            return self.task_timestamp
        return (now or datetime.now()).strftime(COMMENT_TIMESTAMP_FORMAT)
