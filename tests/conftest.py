"""Shared pytest fixtures and test helpers for capsactl tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from capsactl.config.settings import CapsaSettings
from capsactl.infrastructure.capsa import Capsa
from capsactl.infrastructure.filesystem import today_stamp
from capsactl.services.telemetry import disable_telemetry

_ENV_VARS = (
    "EMX_AGENT_NAME",
    "EMX_TASK_TIMESTAMP",
    "EMX_TASKFILE",
    "EMX_NOTE_HOME",
    "EMX_NOTE_DEFAULT",
    "EMX_CAPS",
    "CAPSACTL_CONFIG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """No test sees the developer's own agent name or notes home."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """``-v`` enables telemetry for the whole thread; switch it off again."""
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def notes_home(tmp_path: Path) -> Path:
    home = tmp_path / "notes-home"
    home.mkdir()
    return home


@pytest.fixture
def capsa_root(notes_home: Path) -> Path:
    """The default capsa with the standard layout.

    This is the single source of truth for the capsa directory layout.
    All capsa-related fixtures build on this.
    """
    root = notes_home / ".default"
    (root / "#daily").mkdir(parents=True)
    (root / "note").mkdir()
    return root


@pytest.fixture
def capsa(capsa_root: Path) -> Capsa:
    return Capsa(name=capsa_root.name, path=capsa_root, is_default=True)


@pytest.fixture
def settings(capsa_root: Path) -> CapsaSettings:
    """Anonymous settings with a fixed comment timestamp."""
    return CapsaSettings(capsa_root=capsa_root, task_timestamp="2024-01-15 10:30")


@pytest.fixture
def alice(capsa_root: Path) -> CapsaSettings:
    return CapsaSettings(
        capsa_root=capsa_root,
        agent_name="alice",
        task_timestamp="2024-01-15 10:30",
    )


@pytest.fixture
def bob(capsa_root: Path) -> CapsaSettings:
    return CapsaSettings(
        capsa_root=capsa_root,
        agent_name="bob",
        task_timestamp="2024-01-15 11:00",
    )


@pytest.fixture
def _isolated_capsa(
    notes_home: Path,
    capsa_root: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Point the CLI at a temp notes home and run from inside it.

    Use via ``@pytest.mark.usefixtures("_isolated_capsa")`` on command test
    classes. Tests that need the capsa path request ``capsa_root`` directly
    (pytest deduplicates, it's the same directory).
    """
    monkeypatch.setenv("EMX_NOTE_HOME", str(notes_home))
    monkeypatch.setenv("EMX_TASK_TIMESTAMP", "2024-01-15 10:30")
    monkeypatch.chdir(notes_home)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def write_daily(root: Path, date: str, stem: str, body: str = "") -> Path:
    """Create ``#daily/{date}/{stem}.md`` and return its path."""
    path = root / "#daily" / date / f"{stem}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body or f"# {stem}\n", encoding="utf-8")
    return path


def write_today(root: Path, stem: str) -> Path:
    return write_daily(root, today_stamp(), stem)


def write_note(root: Path, name: str, body: str = "") -> Path:
    path = root / "note" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body or f"# {name}\n", encoding="utf-8")
    return path
