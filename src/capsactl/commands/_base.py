"""Click base classes shared by every capsactl command.

``CapsaCommand`` and ``CapsaGroup`` accept two extra keywords:

``examples``
    Usage lines printed by an eager ``--examples`` flag. It exits before
    the capsa is resolved, so it never touches the notes home.
``writes``
    The command edits the task file. It gets a ``--dry-run`` flag and its
    examples end with a reminder about it.
"""

from __future__ import annotations

from typing import Any

import click

DRY_RUN_HELP = "Preview the edit without writing the task file."
DRY_RUN_NOTE = "Add --dry-run to any of these to preview the edit first."


def _examples_text(examples: str, *, writes: bool) -> str:
    body = "\n".join(f"  {line.strip()}" for line in examples.splitlines() if line.strip())
    if writes:
        body += f"\n\n{DRY_RUN_NOTE}"
    return body


def _examples_option(text: str) -> click.Option:
    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(text)
        ctx.exit(0)

    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=show_examples,
        help="Show usage examples and exit.",
    )


class CapsaCommand(click.Command):
    """Command with ``--examples`` and, for task file edits, ``--dry-run``."""

    def __init__(
        self,
        *args: Any,
        examples: str | None = None,
        writes: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.writes = writes
        self.examples = _examples_text(examples, writes=writes) if examples else None
        if writes:
            self.params.append(click.Option(["--dry-run"], is_flag=True, help=DRY_RUN_HELP))
        if self.examples:
            self.params.append(_examples_option(self.examples))


class CapsaGroup(click.Group):
    """Group whose subcommands are ``CapsaCommand`` by default."""

    command_class = CapsaCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = _examples_text(examples, writes=False) if examples else None
        if self.examples:
            self.params.append(_examples_option(self.examples))
