"""Command group: task lifecycle in the capsa's task file."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from capsactl.commands._base import CapsaGroup
from capsactl.services.task import TaskService

if TYPE_CHECKING:
    from capsactl.commands._context import AppContext

_TASK_EXAMPLES = """\
  capsactl task add 20240115/standup
  EMX_AGENT_NAME=alice capsactl task take TASK-01 --header Today
  EMX_AGENT_NAME=alice capsactl task comment TASK-01 "drafted outline"
  EMX_AGENT_NAME=alice capsactl task release TASK-01 --done
  capsactl task list --status doing --owner @alice
  capsactl task log TASK-01"""


def _service(app: AppContext) -> TaskService:
    return TaskService(app.capsa, app.settings)


@click.group(cls=CapsaGroup, examples=_TASK_EXAMPLES)
@click.pass_obj
def task(app: AppContext) -> None:
    """Track tasks in TASK.md (backlog -> doing -> done)."""


@task.command(
    examples="""\
  capsactl task add 143022
  capsactl task add 20240115/standup
  capsactl task add note/design-review.md"""
)
@click.argument("node_ref")
@click.pass_obj
def add(app: AppContext, node_ref: str) -> None:
    """Register a note as a backlog task and print its id."""
    app.emit(_service(app).add(node_ref))


@task.command(
    examples="""\
  EMX_AGENT_NAME=alice capsactl task take TASK-01
  capsactl task take TASK-01 --header Today --title "Write report"
  capsactl task take TASK-01 --dry-run""",
    writes=True,
)
@click.argument("task_id")
@click.option("--title", default=None, help="Checklist title (default: existing or node ref).")
@click.option("--header", default=None, help="Body header to file the task under.")
@click.pass_obj
def take(
    app: AppContext,
    task_id: str,
    title: str | None,
    header: str | None,
    dry_run: bool,
) -> None:
    """Move a task into the body and claim it."""
    app.emit(_service(app).take(task_id, title=title, header=header, dry_run=dry_run))


@task.command(
    examples="""\
  capsactl task comment TASK-01 "found the root cause"
  capsactl task comment TASK-01 "fixed" --git 3f2a9c1""",
    writes=True,
)
@click.argument("task_id")
@click.argument("message")
@click.option("--git", "git_hash", default=None, help="Commit hash to attach.")
@click.pass_obj
def comment(
    app: AppContext,
    task_id: str,
    message: str,
    git_hash: str | None,
    dry_run: bool,
) -> None:
    """Append a timestamped comment to a task."""
    app.emit(_service(app).comment(task_id, message, git_hash=git_hash, dry_run=dry_run))


@task.command(
    examples="""\
  capsactl task release TASK-01
  capsactl task release TASK-01 TASK-02 --done
  capsactl task release TASK-03 --force""",
    writes=True,
)
@click.argument("task_ids", nargs=-1, required=True)
@click.option("--done", is_flag=True, help="Mark the tasks as done.")
@click.option("--force", is_flag=True, help="Release even if unowned (single task only).")
@click.pass_obj
def release(
    app: AppContext,
    task_ids: tuple[str, ...],
    done: bool,
    force: bool,
    dry_run: bool,
) -> None:
    """Drop ownership of tasks, optionally marking them done."""
    app.emit(_service(app).release(list(task_ids), done=done, force=force, dry_run=dry_run))


@task.command(
    name="list",
    examples="""\
  capsactl task list
  capsactl task list --status backlog
  capsactl task list --owner "(none)"
  capsactl task list --status doing --oneline""",
)
@click.option("--status", default=None, help="backlog, doing, done or all.")
@click.option("--owner", default=None, help='Owner marker (e.g. @alice) or "(none)".')
@click.option("--oneline", is_flag=True, help="Print task ids only.")
@click.pass_obj
def list_cmd(app: AppContext, status: str | None, owner: str | None, oneline: bool) -> None:
    """List tasks."""
    result = _service(app).list_tasks(status=status, owner=owner)
    app.emit(result, quiet=True if oneline else None)


@task.command(examples="  capsactl task show TASK-01")
@click.argument("task_id")
@click.pass_obj
def show(app: AppContext, task_id: str) -> None:
    """Show a task's fields."""
    app.emit(_service(app).show(task_id))


@task.command(examples="  capsactl task log TASK-01")
@click.argument("task_id")
@click.pass_obj
def log(app: AppContext, task_id: str) -> None:
    """Show a task's comment log."""
    app.emit(_service(app).log(task_id))


@task.command(examples="  capsactl task find 20240115")
@click.argument("node_ref")
@click.pass_obj
def find(app: AppContext, node_ref: str) -> None:
    """Find tasks whose note reference contains NODE_REF."""
    app.emit(_service(app).find(node_ref))
