"""Standalone command: resolve a note reference to a path."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from capsactl.commands._base import CapsaCommand
from capsactl.services.note import NoteService

if TYPE_CHECKING:
    from capsactl.commands._context import AppContext

_RESOLVE_EXAMPLES = """\
  capsactl resolve 143022
  capsactl resolve 20240115143022
  capsactl resolve 20240115/standup
  capsactl resolve standup --force
  capsactl --json resolve design-review"""


@click.command(cls=CapsaCommand, examples=_RESOLVE_EXAMPLES)
@click.argument("note_ref")
@click.option("--force", is_flag=True, help="Print every candidate when ambiguous.")
@click.pass_obj
def resolve(app: AppContext, note_ref: str, force: bool) -> None:
    """Resolve NOTE_REF (timestamp, date/prefix or title) to a note path."""
    app.emit(NoteService(app.capsa, app.settings).resolve(note_ref, force=force))
