"""TaskService — task lifecycle on top of the edit engine.

Every command reads the task file once, computes a list of edit
operations against that snapshot, and writes the result back at most
once. Checklist lines are always located through
:func:`~capsactl.domain.edit.locate_unique` and rewritten with a
``Replace`` of the exact located text, so a file that drifted since it
was read fails with ``EDIT_CONFLICT`` instead of being corrupted.

Ownership follows the configured agent: with ``EMX_AGENT_NAME`` set,
``take`` claims the task as ``@name`` and refuses tasks owned by anyone.
Anonymous contexts never claim: they leave owned tasks untouched and
only move unowned ones into the body.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from capsactl.domain.edit import (
    EditOp,
    InsertAtLine,
    Replace,
    ValidationError,
    apply_edits,
)
from capsactl.domain.tasks import (
    ANONYMOUS_MARKER,
    CHECKBOX_DONE,
    CHECKBOX_PENDING,
    DONE_HEADER,
    HeaderNotFound,
    Task,
    TaskFile,
    TaskStatus,
    default_task_file,
    normalize_header,
    parse_task_file,
    render_checklist_line,
    render_comment_line,
    render_reference_line,
    with_checkbox,
    with_owner,
    with_title,
)
from capsactl.infrastructure.filesystem import read_text, task_file_path, write_text
from capsactl.infrastructure.resolver import NoteResolutionError, resolve_note_paths
from capsactl.services._helpers import edit_conflict, resolution_failure
from capsactl.services.base import BaseService
from capsactl.services.result import ServiceResult
from capsactl.services.telemetry import record, traced

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

NO_OWNER = "(none)"
STATUS_FILTER_ALL = "all"


def _entry_lines(entry: str, *, header: str | None, trailer: Sequence[str] = ()) -> list[str]:
    """Lines for a new body entry: optional header block, entry, trailer, blank."""
    lines = [normalize_header(header), ""] if header else []
    return [*lines, entry, *trailer, ""]


def _insert_block(at: int, lines: Sequence[str]) -> list[EditOp]:
    return [InsertAtLine(at + offset, line) for offset, line in enumerate(lines)]


def _task_log(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.display_title,
        "status": str(task.status),
        "owner": task.owner,
        "comments": list(task.comments),
    }


class TaskService(BaseService):
    """Task commands over the capsa's task file."""

    @property
    def task_file(self) -> Path:
        return task_file_path(self.root, self._settings.task_filename)

    # ── File access ──────────────────────────────────────────────────

    def _parse(self, content: str) -> TaskFile:
        return parse_task_file(content, default_prefix=self._settings.task.default_prefix)

    def _load(self) -> TaskFile | None:
        path = self.task_file
        if not path.is_file():
            return None
        return self._parse(read_text(path))

    def _save(self, content: str) -> None:
        write_text(self.task_file, content)
        record(written=self._display(self.task_file))

    # ── Error shapes ─────────────────────────────────────────────────

    def _missing_file(self, op: str) -> ServiceResult:
        return ServiceResult.failure(
            op,
            "TASK_FILE_NOT_FOUND",
            f"Task file not found: {self._display(self.task_file)}",
            hint="Use 'task add NODE_REF' to create it",
        )

    @staticmethod
    def _not_found(op: str, task_id: str) -> ServiceResult:
        return ServiceResult.failure(op, "TASK_NOT_FOUND", f"Task '{task_id}' not found", id=task_id)

    def _load_task(self, op: str, task_id: str) -> tuple[TaskFile, Task] | ServiceResult:
        task_file = self._load()
        if task_file is None:
            return self._missing_file(op)
        task = task_file.get_task(task_id)
        if task is None:
            return self._not_found(op, task_id)
        return task_file, task

    # ── add ──────────────────────────────────────────────────────────

    @traced
    def add(self, node_ref: str) -> ServiceResult:
        """Register *node_ref* as a backlog task; idempotent per node_ref."""
        op = "task_add"
        try:
            resolve_note_paths(self.root, node_ref, self._settings.task.extensions)
        except NoteResolutionError as exc:
            return resolution_failure(op, exc, self.root)

        path = self.task_file
        exists = path.is_file()
        if exists:
            content = read_text(path)
        else:
            content = default_task_file(self._settings.task.default_prefix)
        task_file = self._parse(content)

        existing = task_file.find_by_node_ref(node_ref)
        if existing is not None:
            record(task_id=existing, edit_ops=0)
            logger.debug("task add: %s already registered as %s", node_ref, existing)
            return ServiceResult(
                ok=True,
                op=op,
                data={"id": existing, "node_ref": node_ref, "created": False},
            )

        task_id = task_file.next_task_id()
        edit = InsertAtLine(task_file.reference_append_point(), render_reference_line(task_id, node_ref))
        record(task_id=task_id, edit_ops=1)
        self._save(apply_edits(content, [edit]))

        logger.info("task add: %s -> %s", task_id, node_ref)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": task_id,
                "node_ref": node_ref,
                "created": True,
                "path": self._display(path),
            },
            warnings=[] if exists else [f"Created task file {self._display(path)}"],
        )

    # ── take ─────────────────────────────────────────────────────────

    @traced
    def take(
        self,
        task_id: str,
        *,
        title: str | None = None,
        header: str | None = None,
        dry_run: bool = False,
    ) -> ServiceResult:
        """Move a task into the body and claim it for the configured agent."""
        op = "task_take"
        loaded = self._load_task(op, task_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        task_file, task = loaded

        marker = self._settings.agent_marker
        if marker is not None and task.owner is not None:
            return ServiceResult.failure(
                op,
                "ALREADY_TAKEN",
                f"Task '{task.id}' already taken by {task.owner}",
                id=task.id,
                owner=task.owner,
                hint=(
                    f"Use 'task release {task.id}' if you are {task.owner}, "
                    "or wait for release"
                ),
            )
        if marker is None and task.owner is not None:
            # Anonymous contexts are read-only towards claimed tasks.
            logger.info("task take: %s owned by %s, left untouched", task.id, task.owner)
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "id": task.id,
                    "title": task.display_title,
                    "owner": task.owner,
                    "status": str(task.status),
                    "action": "none",
                },
                warnings=[
                    f"Task '{task.id}' is owned by {task.owner}; "
                    "set EMX_AGENT_NAME to claim tasks"
                ],
            )

        entry_title = title or task.title or task.node_ref
        done = task.status is TaskStatus.DONE
        edits: list[EditOp] = []

        try:
            if task.status is TaskStatus.BACKLOG:
                insert_at, needs_header = task_file.body_insert_point(header)
                entry = render_checklist_line(entry_title, task.id, done=done, owner=marker)
                lines = _entry_lines(entry, header=header if needs_header else None)
                edits = _insert_block(insert_at, lines)
                action = "insert"
            else:
                _index, line = task_file.locate_entry(task.id)
                entry = with_owner(line, marker)
                if title:
                    entry = with_title(entry, title)
                lines = [entry]
                if entry != line:
                    edits = [Replace(line, entry)]
                action = "update" if edits else "none"
            new_content = apply_edits(task_file.content, edits)
        except HeaderNotFound as exc:
            return ServiceResult.failure(
                op,
                "HEADER_NOT_FOUND",
                str(exc),
                header=exc.header_line,
                hint="Use an existing header, or omit --header",
            )
        except ValidationError as exc:
            return edit_conflict(op, exc)

        record(task_id=task.id, edit_ops=len(edits))
        data: dict[str, Any] = {
            "id": task.id,
            "title": entry_title,
            "owner": marker,
            "status": str(TaskStatus.DONE if done else TaskStatus.DOING),
            "action": action,
        }
        if dry_run:
            data["preview"] = {
                "file": self._display(self.task_file),
                "lines": lines,
                "header": normalize_header(header) if header else None,
            }
            return ServiceResult(ok=True, op=op, data=data, meta={"dry_run": True})

        if edits:
            self._save(new_content)
        logger.info("task take: %s owner=%s action=%s", task.id, marker, action)
        return ServiceResult(ok=True, op=op, data=data)

    # ── comment ──────────────────────────────────────────────────────

    @traced
    def comment(
        self,
        task_id: str,
        message: str,
        *,
        git_hash: str | None = None,
        dry_run: bool = False,
    ) -> ServiceResult:
        """Append a timestamped comment under a task's checklist entry."""
        op = "task_comment"
        loaded = self._load_task(op, task_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        task_file, task = loaded

        if task.status is TaskStatus.BACKLOG:
            return ServiceResult.failure(
                op,
                "NOT_TAKEN",
                f"Task '{task.id}' not in body section",
                id=task.id,
                hint=f"Use 'task take {task.id}' first",
            )

        line = render_comment_line(self._settings.comment_timestamp(), message, git_hash)
        try:
            index, _entry = task_file.locate_entry(task.id)
            insert_at = task_file.comment_insert_point(index)
            new_content = apply_edits(task_file.content, [InsertAtLine(insert_at, line)])
        except ValidationError as exc:
            return edit_conflict(op, exc)
        record(task_id=task.id, edit_ops=1)

        if dry_run:
            data = _task_log(task)
            data["preview"] = {"file": self._display(self.task_file), "lines": [line]}
            return ServiceResult(ok=True, op=op, data=data, meta={"dry_run": True})

        self._save(new_content)
        updated = self._parse(new_content).get_task(task.id) or task
        return ServiceResult(ok=True, op=op, data=_task_log(updated))

    # ── release ──────────────────────────────────────────────────────

    @traced
    def release(
        self,
        task_ids: Sequence[str],
        *,
        done: bool = False,
        force: bool = False,
        dry_run: bool = False,
    ) -> ServiceResult:
        """Drop ownership of tasks, optionally marking them done.

        Releasing an already released task changes nothing, so running
        the same release twice is safe.
        """
        op = "task_release"
        if not task_ids:
            return ServiceResult.failure(op, "INVALID_ARGUMENT", "No task ids given")

        marker = self._settings.agent_marker
        if marker is None and not done and len(task_ids) == 1:
            # Anonymous contexts hold nothing to release.
            return self.log(task_ids[0])

        if force and len(task_ids) > 1:
            return ServiceResult.failure(
                op, "INVALID_ARGUMENT", "--force only works with single task"
            )

        task_file = self._load()
        if task_file is None:
            return self._missing_file(op)

        content = task_file.content
        released: list[str] = []
        skipped: list[str] = []
        changes: list[dict[str, Any]] = []
        edit_ops = 0
        timestamp = self._settings.comment_timestamp()
        anonymous_note = render_comment_line(timestamp, f"Completed by {ANONYMOUS_MARKER}")

        for raw_id in task_ids:
            current = self._parse(content)
            task = current.get_task(raw_id)
            if task is None:
                return self._not_found(op, raw_id)

            if not force and not done and task.owner is None:
                skipped.append(task.id)
                continue

            try:
                if task.status is TaskStatus.BACKLOG:
                    if not done:
                        skipped.append(task.id)
                        continue
                    edits = self._synthesize_done_entry(current, task, anonymous_note, marker)
                else:
                    index, line = current.locate_entry(task.id)
                    updated = with_checkbox(with_owner(line, None), done=done)
                    if updated == line:
                        skipped.append(task.id)
                        continue
                    edits = [Replace(line, updated)]
                    if done and marker is None:
                        edits.append(InsertAtLine(current.comment_insert_point(index), anonymous_note))
                content = apply_edits(content, edits)
                edit_ops += len(edits)
            except ValidationError as exc:
                return edit_conflict(op, exc)

            released.append(task.id)
            was_done = task.status is TaskStatus.DONE
            changes.append(
                {
                    "id": task.id,
                    "checkbox": [
                        CHECKBOX_DONE if was_done else CHECKBOX_PENDING,
                        CHECKBOX_DONE if done else CHECKBOX_PENDING,
                    ],
                    "owner": [task.owner or NO_OWNER, NO_OWNER],
                }
            )

        record(released=len(released), skipped=len(skipped), edit_ops=edit_ops)
        data: dict[str, Any] = {"released": released, "skipped": skipped, "changes": changes}
        if dry_run:
            data["preview"] = {"file": self._display(self.task_file)}
            return ServiceResult(ok=True, op=op, data=data, meta={"dry_run": True})

        if released:
            self._save(content)
            logger.info("task release: %s done=%s", ", ".join(released), done)

        if done and len(task_ids) == 1:
            final = self._parse(content).get_task(task_ids[0])
            if final is not None:
                data["log"] = _task_log(final)
        return ServiceResult(ok=True, op=op, data=data)

    def _synthesize_done_entry(
        self,
        task_file: TaskFile,
        task: Task,
        anonymous_note: str,
        marker: str | None,
    ) -> list[EditOp]:
        """Edits that add a ``- [x]`` entry for a backlog task released as done."""
        try:
            insert_at, needs_header = task_file.body_insert_point(DONE_HEADER)
        except HeaderNotFound:
            insert_at, needs_header = task_file.body_insert_point(None)
        entry = render_checklist_line(task.display_title, task.id, done=True, owner=None)
        trailer = [anonymous_note] if marker is None else []
        lines = _entry_lines(entry, header=DONE_HEADER if needs_header else None, trailer=trailer)
        return _insert_block(insert_at, lines)

    # ── Read-only views ──────────────────────────────────────────────

    @traced
    def list_tasks(
        self,
        *,
        status: str | None = None,
        owner: str | None = None,
    ) -> ServiceResult:
        """Tasks filtered by status (``backlog/doing/done/all``) and owner."""
        op = "task_list"
        warnings: list[str] = []
        wanted: TaskStatus | None = None
        if status and status != STATUS_FILTER_ALL:
            try:
                wanted = TaskStatus(status)
            except ValueError:
                warnings.append(f"Unknown status filter '{status}', showing all")

        task_file = self._load()
        tasks = task_file.all_tasks() if task_file is not None else []

        def matches(task: Task) -> bool:
            if wanted is not None and task.status is not wanted:
                return False
            if owner is None:
                return True
            if owner == NO_OWNER:
                return task.owner is None
            return task.owner == owner

        selected = [task.to_dict() for task in tasks if matches(task)]
        return ServiceResult(
            ok=True,
            op=op,
            data={"tasks": selected, "count": len(selected)},
            warnings=warnings,
        )

    @traced
    def show(self, task_id: str) -> ServiceResult:
        op = "task_show"
        loaded = self._load_task(op, task_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        _task_file, task = loaded
        data = task.to_dict()
        data["comment_count"] = len(task.comments)
        return ServiceResult(ok=True, op=op, data=data)

    @traced
    def log(self, task_id: str) -> ServiceResult:
        op = "task_log"
        loaded = self._load_task(op, task_id)
        if isinstance(loaded, ServiceResult):
            return loaded
        _task_file, task = loaded
        return ServiceResult(ok=True, op=op, data=_task_log(task))

    @traced
    def find(self, node_ref: str) -> ServiceResult:
        """Tasks whose node_ref contains *node_ref*."""
        op = "task_find"
        task_file = self._load()
        tasks = task_file.all_tasks() if task_file is not None else []
        found = [task.to_dict() for task in tasks if node_ref in task.node_ref]
        warnings = [] if found else [f"No tasks found matching '{node_ref}'"]
        return ServiceResult(
            ok=True,
            op=op,
            data={"query": node_ref, "tasks": found, "count": len(found)},
            warnings=warnings,
        )
