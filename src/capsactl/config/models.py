"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, capsactl.toml only contains
overrides. Most users never need a config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from capsactl.domain.ids import DEFAULT_TASK_PREFIX


def _normalize_extensions(value: tuple[str, ...]) -> tuple[str, ...]:
    """``(".md", " txt")`` -> ``("md", "txt")``."""
    return tuple(ext.strip().lstrip(".") for ext in value if ext.strip())


class TaskConfig(BaseModel):
    """[task] section."""

    model_config = {"frozen": True}

    filename: str = "TASK.md"
    default_prefix: str = DEFAULT_TASK_PREFIX
    # Note types accepted by ``task add``
    extensions: tuple[str, ...] = ("md", "txt")

    @field_validator("extensions")
    @classmethod
    def _clean_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _normalize_extensions(value)


class ResolveConfig(BaseModel):
    """[resolve] section."""

    model_config = {"frozen": True}

    extensions: tuple[str, ...] = ("md",)

    @field_validator("extensions")
    @classmethod
    def _clean_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _normalize_extensions(value)
