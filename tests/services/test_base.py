"""Tests for BaseService and service inheritance."""

from pathlib import Path

import pytest

from capsactl.config.settings import CapsaSettings
from capsactl.infrastructure.capsa import Capsa
from capsactl.services.base import BaseService
from capsactl.services.note import NoteService
from capsactl.services.task import TaskService


class TestBaseService:
    def test_root_is_capsa_path(self, capsa: Capsa, settings: CapsaSettings) -> None:
        assert BaseService(capsa, settings).root == capsa.path

    def test_display_is_capsa_relative(self, capsa: Capsa, settings: CapsaSettings) -> None:
        service = BaseService(capsa, settings)
        assert service._display(capsa.path / "note" / "a.md") == "note/a.md"

    def test_subclass_pattern(self, capsa: Capsa, settings: CapsaSettings) -> None:
        """Verify the intended subclass usage pattern works."""

        class MyService(BaseService):
            def do_thing(self) -> str:
                return f"capsa at {self.root}"

        assert str(capsa.path) in MyService(capsa, settings).do_thing()


@pytest.mark.parametrize("service_cls", [TaskService, NoteService])
def test_services_extend_base(service_cls: type) -> None:
    assert issubclass(service_cls, BaseService)


def test_task_file_follows_settings(capsa: Capsa, capsa_root: Path) -> None:
    settings = CapsaSettings(capsa_root=capsa_root, taskfile="work/TODO.md")
    assert TaskService(capsa, settings).task_file == capsa_root / "work" / "TODO.md"
