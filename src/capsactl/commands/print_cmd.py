"""Standalone command: print a note's content."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from capsactl.commands._base import CapsaCommand
from capsactl.services.note import NoteService

if TYPE_CHECKING:
    from capsactl.commands._context import AppContext


@click.command(
    "print",
    cls=CapsaCommand,
    examples="""\
  capsactl print 143022
  capsactl print 20240115/standup
  capsactl print design-review | less""",
)
@click.argument("note_ref")
@click.pass_obj
def print_cmd(app: AppContext, note_ref: str) -> None:
    """Print the note NOTE_REF resolves to."""
    app.emit(NoteService(app.capsa, app.settings).read(note_ref))
