"""Tests for capsa location, agent scoping and link files."""

from pathlib import Path

import pytest

from capsactl.config.settings import CapsaSettings
from capsactl.infrastructure.capsa import (
    CapsaLocator,
    CapsaNotFoundError,
    locate_capsa,
    parse_link_target,
)


class TestScopedName:
    def test_no_agent(self, tmp_path: Path) -> None:
        assert CapsaLocator(tmp_path).scoped_name("work") == "work"

    def test_agent_prefix(self, tmp_path: Path) -> None:
        locator = CapsaLocator(tmp_path, agent_name="alice")
        assert locator.scoped_name("work") == "alice-work"

    def test_default_maps_to_agent(self, tmp_path: Path) -> None:
        locator = CapsaLocator(tmp_path, agent_name="alice")
        assert locator.scoped_name(".default") == "alice"

    def test_global_scope_disables_prefix(self, tmp_path: Path) -> None:
        locator = CapsaLocator(tmp_path, agent_name="alice", global_scope=True)
        assert locator.scoped_name("work") == "work"


class TestLinkFiles:
    def test_parse_target(self) -> None:
        assert parse_link_target("[link]\ntarget = /srv/notes\n") == Path("/srv/notes")

    def test_missing_section(self) -> None:
        assert parse_link_target("target = /srv/notes\n") is None

    def test_empty_target(self) -> None:
        assert parse_link_target("[link]\ntarget =\n") is None

    def test_link_resolves_to_target(self, tmp_path: Path) -> None:
        target = tmp_path / "shared-notes"
        target.mkdir()
        home = tmp_path / "home"
        home.mkdir()
        (home / "shared").write_text(f"[link]\ntarget = {target}\n")
        capsa = CapsaLocator(home).resolve("shared")
        assert capsa.is_link
        assert capsa.path == target.resolve()

    def test_relative_link_target(self, tmp_path: Path) -> None:
        home = tmp_path / "home"
        (home / "real").mkdir(parents=True)
        (home / "alias").write_text("[link]\ntarget = real\n")
        assert CapsaLocator(home).resolve("alias").path == (home / "real").resolve()

    def test_link_to_missing_directory(self, tmp_path: Path) -> None:
        (tmp_path / "broken").write_text("[link]\ntarget = /nonexistent/capsa\n")
        with pytest.raises(CapsaNotFoundError, match="not a directory"):
            CapsaLocator(tmp_path).resolve("broken")


class TestResolve:
    def test_existing_named_capsa(self, tmp_path: Path) -> None:
        (tmp_path / "work").mkdir()
        capsa = CapsaLocator(tmp_path).resolve("work")
        assert capsa.name == "work"
        assert capsa.path == tmp_path / "work"
        assert not capsa.is_default

    def test_missing_named_capsa(self, tmp_path: Path) -> None:
        with pytest.raises(CapsaNotFoundError, match="Capsa 'work' not found") as exc_info:
            CapsaLocator(tmp_path).resolve("work")
        assert exc_info.value.code == "CAPSA_NOT_FOUND"

    def test_default_auto_created(self, tmp_path: Path) -> None:
        capsa = CapsaLocator(tmp_path).resolve()
        assert capsa.is_default
        assert (tmp_path / ".default" / "#daily").is_dir()

    def test_agent_default_auto_created(self, tmp_path: Path) -> None:
        capsa = CapsaLocator(tmp_path, agent_name="alice").resolve()
        assert capsa.name == "alice"
        assert (tmp_path / "alice" / "#daily").is_dir()

    def test_agent_scoped_lookup(self, tmp_path: Path) -> None:
        (tmp_path / "alice-research").mkdir()
        capsa = CapsaLocator(tmp_path, agent_name="alice").resolve("research")
        assert capsa.path == tmp_path / "alice-research"

    def test_custom_default_name(self, tmp_path: Path) -> None:
        (tmp_path / "main").mkdir()
        capsa = CapsaLocator(tmp_path, default_name="main").resolve()
        assert capsa.path == tmp_path / "main"
        assert capsa.is_default


class TestLocateCapsa:
    def test_capsa_root_wins(self, capsa_root: Path) -> None:
        capsa = locate_capsa(CapsaSettings(capsa_root=capsa_root, caps="other"))
        assert capsa.path == capsa_root

    def test_capsa_root_must_exist(self, tmp_path: Path) -> None:
        with pytest.raises(CapsaNotFoundError):
            locate_capsa(CapsaSettings(capsa_root=tmp_path / "missing"))

    def test_uses_notes_home(self, notes_home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMX_NOTE_HOME", str(notes_home))
        (notes_home / "work").mkdir()
        capsa = locate_capsa(CapsaSettings(caps="work"))
        assert capsa.path == notes_home / "work"
