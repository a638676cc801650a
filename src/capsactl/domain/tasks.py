"""Task file model — parse ``TASK.md`` into typed tasks, render its lines.

File layout (three ``---`` delimiters)::

    ---
    PREFIX: TASK-
    ---
    ## Today

    - [ ] [Write report][TASK-01] @alice
      - 2024-01-15 10:30 drafted outline
    ---
    [TASK-01]: daily/20240115/103000

Status is derived, never stored:

- backlog: a reference definition exists, no checklist entry in the body
- doing:   checklist entry with ``[ ]``
- done:    checklist entry with ``[x]``

Parsing happens in one pass (:func:`parse_task_file`) and produces
:class:`Task` records; rendering helpers build the lines that the task
service feeds to the edit engine. Nothing here touches the filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum

from capsactl.domain.edit import LineContaining, locate_unique, split_lines
from capsactl.domain.ids import DEFAULT_TASK_PREFIX, next_task_id
from capsactl.domain.markdown import (
    FRONTMATTER_DELIMITER,
    Heading,
    extract_frontmatter_prefix,
    extract_headings,
    find_heading_line,
    parse_reference_line,
)

# - [ ] [title][TASK-01] @owner
_ENTRY_PATTERN = re.compile(
    r"^- \[(?P<box>[ xX])\] \[(?P<title>.*)\]\[(?P<id>[^\[\]]+)\](?P<rest>.*)$"
)

CHECKBOX_DONE = "[x]"
CHECKBOX_PENDING = "[ ]"
COMMENT_INDENT = "  "
DONE_HEADER = "Done"
ANONYMOUS_MARKER = "@anonymous"


def default_task_file(prefix: str = DEFAULT_TASK_PREFIX) -> str:
    """Skeleton content for a task file that doesn't exist yet."""
    return f"---\nPREFIX: {prefix}\n---\n\n---\n\n"


class TaskStatus(StrEnum):
    """Derived lifecycle status of a task."""

    BACKLOG = "backlog"
    DOING = "doing"
    DONE = "done"


class HeaderNotFound(LookupError):
    """A requested body header is absent while other headers exist."""

    def __init__(self, header_line: str) -> None:
        self.header_line = header_line
        super().__init__(f"Header '{header_line}' not found")


@dataclass(frozen=True)
class ChecklistEntry:
    """A parsed ``- [ ] [title][id] @owner`` body line."""

    index: int
    line: str
    task_id: str
    title: str
    done: bool
    owner: str | None
    comments: tuple[str, ...] = ()


@dataclass(frozen=True)
class Task:
    """Read-only view of one task."""

    id: str
    node_ref: str
    status: TaskStatus
    title: str | None = None
    owner: str | None = None
    comments: tuple[str, ...] = ()

    @property
    def display_title(self) -> str:
        return self.title or self.node_ref

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "node_ref": self.node_ref,
            "status": str(self.status),
            "owner": self.owner,
            "comments": list(self.comments),
        }


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_checklist_line(title: str, task_id: str, *, done: bool, owner: str | None) -> str:
    """Render ``- [x] [title][id] @owner`` (owner omitted when None)."""
    checkbox = CHECKBOX_DONE if done else CHECKBOX_PENDING
    line = f"- {checkbox} [{title}][{task_id}]"
    return f"{line} {owner}" if owner else line


def render_comment_line(timestamp: str, message: str, git_hash: str | None = None) -> str:
    """Render ``  - {timestamp} {message}[ [hash]]``."""
    line = f"{COMMENT_INDENT}- {timestamp} {message}"
    return f"{line} [{git_hash}]" if git_hash else line


def render_reference_line(task_id: str, node_ref: str) -> str:
    return f"[{task_id}]: {node_ref}"


def normalize_header(header: str) -> str:
    """``Today`` -> ``## Today``; headers already starting with ``##`` pass through."""
    return header if header.startswith("##") else f"## {header}"


def _split_entry(line: str) -> tuple[str, str, re.Match[str]] | None:
    stripped = line.strip()
    match = _ENTRY_PATTERN.match(stripped)
    if match is None:
        return None
    indent = line[: len(line) - len(line.lstrip())]
    return indent, stripped, match


def with_owner(line: str, owner: str | None) -> str:
    """*line* with its ``@owner`` marker replaced, or stripped when *owner* is None.

    Anything between the id and the owner marker is preserved.
    """
    parts = _split_entry(line)
    if parts is None:
        return line
    indent, stripped, match = parts
    rest = match.group("rest")
    at = rest.find("@")
    head = stripped[: match.start("rest")] + (rest[:at] if at >= 0 else rest)
    base = indent + head.rstrip()
    return f"{base} {owner}" if owner else base


def with_checkbox(line: str, *, done: bool) -> str:
    parts = _split_entry(line)
    if parts is None:
        return line
    indent, stripped, match = parts
    checkbox = CHECKBOX_DONE if done else CHECKBOX_PENDING
    return f"{indent}- {checkbox}{stripped[match.end('box') + 1 :]}"


def with_title(line: str, title: str) -> str:
    parts = _split_entry(line)
    if parts is None:
        return line
    indent, stripped, match = parts
    return f"{indent}{stripped[: match.start('title')]}{title}{stripped[match.end('title') :]}"


def parse_checklist_line(line: str, index: int = 0) -> ChecklistEntry | None:
    """Parse a checklist entry line, or None if *line* isn't one."""
    match = _ENTRY_PATTERN.match(line.strip())
    if match is None:
        return None
    rest = match.group("rest").strip()
    owner = rest[rest.index("@") :].strip() if "@" in rest else None
    return ChecklistEntry(
        index=index,
        line=line,
        task_id=match.group("id"),
        title=match.group("title"),
        done=match.group("box") in "xX",
        owner=owner or None,
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _comment_block_end(lines: list[str], entry_index: int) -> int:
    """Index just past the indented block that follows a checklist entry."""
    end = entry_index + 1
    while end < len(lines):
        line = lines[end]
        if not line.strip() or not line.startswith(COMMENT_INDENT):
            break
        if parse_checklist_line(line) is not None:
            break
        end += 1
    return end


def _collect_comments(lines: list[str], entry_index: int) -> tuple[str, ...]:
    block = lines[entry_index + 1 : _comment_block_end(lines, entry_index)]
    return tuple(
        line.strip()[2:] for line in block if line.startswith(f"{COMMENT_INDENT}- ")
    )


@dataclass(frozen=True)
class TaskFile:
    """Parsed task file. Re-parse after every edit; nothing is cached."""

    content: str
    prefix: str
    references: list[tuple[str, str]] = field(default_factory=list)
    entries: dict[str, ChecklistEntry] = field(default_factory=dict)

    # -- identity ---------------------------------------------------------

    def canonical_id(self, task_id: str) -> str | None:
        """The id as written in its reference line (ASCII case-insensitive lookup)."""
        wanted = task_id.lower()
        for ref_id, _dest in self.references:
            if ref_id.lower() == wanted:
                return ref_id
        return None

    def get_node_ref(self, task_id: str) -> str | None:
        wanted = task_id.lower()
        for ref_id, dest in self.references:
            if ref_id.lower() == wanted:
                return dest
        return None

    def find_by_node_ref(self, node_ref: str) -> str | None:
        """Id of the first task pointing at exactly *node_ref*."""
        for ref_id, dest in self.references:
            if dest == node_ref:
                return ref_id
        return None

    def next_task_id(self) -> str:
        return next_task_id((ref_id for ref_id, _ in self.references), self.prefix)

    # -- tasks -------------------------------------------------------------

    def get_task(self, task_id: str) -> Task | None:
        canonical = self.canonical_id(task_id)
        if canonical is None:
            return None
        node_ref = self.get_node_ref(canonical) or ""
        entry = self.entries.get(canonical)
        if entry is None:
            return Task(id=canonical, node_ref=node_ref, status=TaskStatus.BACKLOG)
        return Task(
            id=canonical,
            node_ref=node_ref,
            status=TaskStatus.DONE if entry.done else TaskStatus.DOING,
            title=entry.title,
            owner=entry.owner,
            comments=entry.comments,
        )

    def all_tasks(self) -> list[Task]:
        tasks: list[Task] = []
        seen: set[str] = set()
        for ref_id, _dest in self.references:
            if ref_id in seen:
                continue
            seen.add(ref_id)
            task = self.get_task(ref_id)
            if task is not None:
                tasks.append(task)
        return tasks

    # -- locators ----------------------------------------------------------

    def locate_entry(self, task_id: str) -> tuple[int, str]:
        """Locate the single checklist line for *task_id*.

        Raises ``PatternNotFound`` / ``MultipleMatches`` from the edit
        engine when the document drifted.
        """
        return locate_unique(self.content, LineContaining(f"[{task_id}]", prefix="- ["))

    def comment_insert_point(self, entry_index: int) -> int:
        """Line index after the entry's existing comment block."""
        return _comment_block_end(split_lines(self.content), entry_index)

    def _delimiters(self) -> list[int]:
        lines = split_lines(self.content)
        return [i for i, line in enumerate(lines) if line.strip() == FRONTMATTER_DELIMITER][:3]

    def body_insert_point(self, header: str | None = None) -> tuple[int, bool]:
        """Where a new checklist entry goes, and whether *header* must be created.

        Raises:
            HeaderNotFound: *header* is absent but other ``##`` headers exist.
        """
        lines = split_lines(self.content)
        delimiters = self._delimiters()

        if len(delimiters) >= 2:
            body_start = delimiters[1] + 1
            while body_start < len(lines) and not lines[body_start].strip():
                body_start += 1
        else:
            body_start = min(3, len(lines))
        body_end = delimiters[2] if len(delimiters) >= 3 else len(lines)
        body_end = max(body_end, body_start)

        if header is None:
            return body_start, False

        header_line = normalize_header(header)
        parsed = extract_headings(header_line)
        wanted = parsed[0] if parsed else Heading(level=2, text=header_line.lstrip("#").strip())

        body = "\n".join(lines[body_start:body_end])
        found = find_heading_line(body, wanted.text, level=wanted.level)
        if found is not None:
            insert_at = body_start + found + 1
            if insert_at < len(lines) and not lines[insert_at].strip():
                insert_at += 1
            return insert_at, False

        if any(heading.level >= 2 for heading in extract_headings(body)):
            raise HeaderNotFound(header_line)
        return body_start, True

    def reference_append_point(self) -> int:
        """Line index after the last reference definition (or the separator)."""
        lines = split_lines(self.content)
        for i in range(len(lines) - 1, -1, -1):
            if parse_reference_line(lines[i]) is not None:
                return i + 1

        delimiters = self._delimiters()
        if len(delimiters) < 3:
            return len(lines)
        result = delimiters[2] + 1
        while result < len(lines) and not lines[result].strip():
            result += 1
        return result


def parse_task_file(content: str, *, default_prefix: str = DEFAULT_TASK_PREFIX) -> TaskFile:
    """Parse task file *content* in a single pass."""
    lines = split_lines(content)
    references: list[tuple[str, str]] = []
    entries: dict[str, ChecklistEntry] = {}

    for index, line in enumerate(lines):
        reference = parse_reference_line(line)
        if reference is not None:
            references.append(reference)
            continue
        entry = parse_checklist_line(line, index)
        if entry is not None and entry.task_id not in entries:
            entries[entry.task_id] = ChecklistEntry(
                index=entry.index,
                line=entry.line,
                task_id=entry.task_id,
                title=entry.title,
                done=entry.done,
                owner=entry.owner,
                comments=_collect_comments(lines, index),
            )

    prefix = extract_frontmatter_prefix(content) or default_prefix
    return TaskFile(content=content, prefix=prefix, references=references, entries=entries)
