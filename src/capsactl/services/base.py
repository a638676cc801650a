"""BaseService — shared foundation for capsactl services.

Every service receives the resolved :class:`Capsa` and the frozen
:class:`CapsaSettings` at construction time. Services never read the
process environment; everything configurable flows through settings.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from capsactl.infrastructure.filesystem import relative_display

if TYPE_CHECKING:
    from pathlib import Path

    from capsactl.config.settings import CapsaSettings
    from capsactl.infrastructure.capsa import Capsa

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class TaskService(BaseService):
            def take(self, task_id: str, ...) -> ServiceResult:
                content = read_text(self.task_file)
                ...
    """

    def __init__(self, capsa: Capsa, settings: CapsaSettings) -> None:
        self._capsa = capsa
        self._settings = settings

    @property
    def root(self) -> Path:
        """Root directory of the capsa this service operates on."""
        return self._capsa.path

    def _display(self, path: Path) -> str:
        return relative_display(path, self.root)
