"""Subcommand modules for capsactl.

Provides register_commands() which uses deferred imports to keep
``capsactl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``task`` group and the standalone note commands."""
    from capsactl.commands.print_cmd import print_cmd
    from capsactl.commands.resolve import resolve
    from capsactl.commands.task import task

    cli.add_command(task)
    cli.add_command(resolve)
    cli.add_command(print_cmd)
