"""Capsa locator — turn settings into the root directory of one capsa.

A capsa is a directory (or an INI link file pointing at one) directly
under the notes home (``EMX_NOTE_HOME``, default ``~/.emx-notes``)::

    ~/.emx-notes/
        .default/          the default capsa
        alice/             agent alice's default capsa
        alice-research/    "research" as seen by agent alice
        shared             link file: [link] target = /srv/shared-notes

Agent scoping: when ``EMX_AGENT_NAME`` is set and ``--global`` is not,
capsa names are prefixed with ``{agent}-``; the default capsa maps to
the agent's own directory. The default capsa is created on first use,
any other missing capsa is an error.
"""

from __future__ import annotations

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from capsactl.infrastructure.filesystem import DAILY_SUBDIR, read_text

if TYPE_CHECKING:
    from capsactl.config.settings import CapsaSettings

logger = logging.getLogger(__name__)

DEFAULT_CAPSA_NAME = ".default"
LINK_SECTION = "link"
LINK_TARGET_KEY = "target"


class CapsaNotFoundError(LookupError):
    """The named capsa does not exist (or its link target is invalid)."""

    code = "CAPSA_NOT_FOUND"

    def __init__(self, name: str, reason: str | None = None) -> None:
        self.name = name
        msg = f"Capsa '{name}' not found"
        super().__init__(f"{msg}: {reason}" if reason else msg)


@dataclass(frozen=True)
class Capsa:
    """A resolved capsa."""

    name: str
    path: Path
    is_link: bool = False
    is_default: bool = False


def parse_link_target(content: str) -> Path | None:
    """``target`` from the ``[link]`` section of a link file, if any."""
    parser = configparser.ConfigParser()
    try:
        parser.read_string(content)
    except configparser.Error:
        return None
    target = parser.get(LINK_SECTION, LINK_TARGET_KEY, fallback="").strip()
    return Path(target).expanduser() if target else None


class CapsaLocator:
    """Resolve capsa names under a notes home directory."""

    def __init__(
        self,
        home: Path,
        *,
        agent_name: str | None = None,
        default_name: str | None = None,
        global_scope: bool = False,
    ) -> None:
        self.home = home
        self.agent_name = agent_name
        self.default_name = default_name or DEFAULT_CAPSA_NAME
        self.global_scope = global_scope

    @classmethod
    def from_settings(cls, settings: CapsaSettings) -> CapsaLocator:
        return cls(
            settings.notes_home,
            agent_name=settings.agent_name,
            default_name=settings.note_default,
            global_scope=settings.global_scope,
        )

    def scoped_name(self, name: str) -> str:
        """Apply the agent prefix to *name* (``.default`` maps to the agent)."""
        if self.global_scope or not self.agent_name:
            return name
        if name == DEFAULT_CAPSA_NAME:
            return self.agent_name
        return f"{self.agent_name}-{name}"

    def find(self, name: str) -> Capsa | None:
        """The capsa called *name*, or None if it doesn't exist."""
        scoped = self.scoped_name(name)
        path = self.home / scoped
        is_default = name == self.default_name

        if path.is_file():
            target = parse_link_target(read_text(path))
            if target is None:
                raise CapsaNotFoundError(scoped, f"link file {path} has no [link] target")
            if not target.is_absolute():
                target = self.home / target
            if not target.is_dir():
                raise CapsaNotFoundError(scoped, f"link target {target} is not a directory")
            return Capsa(name=scoped, path=target.resolve(), is_link=True, is_default=is_default)

        if path.is_dir():
            return Capsa(name=scoped, path=path, is_default=is_default)
        return None

    def resolve(self, name: str | None = None) -> Capsa:
        """Resolve *name*, or the default capsa when None.

        Raises:
            CapsaNotFoundError: a named capsa does not exist.
        """
        capsa = self.find(name or self.default_name)
        if capsa is not None:
            return capsa
        if name is not None and name != self.default_name:
            raise CapsaNotFoundError(self.scoped_name(name))
        return self.create_default()

    def create_default(self) -> Capsa:
        scoped = self.scoped_name(self.default_name)
        path = self.home / scoped
        (path / DAILY_SUBDIR).mkdir(parents=True, exist_ok=True)
        logger.info("Auto-created default capsa %s at %s", scoped, path)
        return Capsa(name=scoped, path=path, is_default=True)


def locate_capsa(settings: CapsaSettings) -> Capsa:
    """The capsa selected by *settings* (``capsa_root`` wins over names)."""
    if settings.capsa_root is not None:
        root = settings.capsa_root
        if not root.is_dir():
            raise CapsaNotFoundError(str(root), "not a directory")
        return Capsa(name=root.name, path=root)
    return CapsaLocator.from_settings(settings).resolve(settings.caps)
