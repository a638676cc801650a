"""Markdown extraction — reference definitions, headings, links, PREFIX.

Pure functions, no infrastructure dependencies. Consumed by the note
resolver (index-file links) and by the task file parser (reference
definitions and the frontmatter ``PREFIX`` key).

Malformed input is never an error: lines that don't parse are skipped.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from capsactl.domain.edit import split_lines

# [id]: dest "optional title"
_REFERENCE_PATTERN = re.compile(r"^\[([^\]]*)\]:(.*)$")

# ## Heading text  (ATX, optional closing hashes)
_HEADING_PATTERN = re.compile(r"^(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")

# [text](dest) inline links, not images
_INLINE_LINK_PATTERN = re.compile(r"(?<!!)\[([^\[\]]*)\]\(([^()\s]+)(?:\s+\"[^\"]*\")?\)")

_FENCE_PATTERN = re.compile(r"^(```|~~~)")

FRONTMATTER_DELIMITER = "---"


@dataclass(frozen=True)
class Heading:
    """An ATX heading extracted from markdown text."""

    level: int
    text: str


@dataclass(frozen=True)
class Link:
    """An inline markdown link ``[text](dest)``."""

    text: str
    dest: str


# ---------------------------------------------------------------------------
# Reference definitions
# ---------------------------------------------------------------------------


def parse_reference_line(line: str) -> tuple[str, str] | None:
    """Parse ``[id]: dest`` into ``(id, dest)``, or None if the line isn't one."""
    match = _REFERENCE_PATTERN.match(line.strip())
    if match is None:
        return None
    parts = match.group(2).split()
    if not parts:
        return None
    return match.group(1), parts[0]


def extract_references(content: str) -> list[tuple[str, str]]:
    """Extract every ``[id]: dest`` definition, in document order.

    Duplicate ids are all collected; lookups via
    :func:`get_reference_dest` return the first.
    """
    references: list[tuple[str, str]] = []
    for line in split_lines(content):
        parsed = parse_reference_line(line)
        if parsed is not None:
            references.append(parsed)
    return references


def get_reference_dest(content: str, ref_id: str) -> str | None:
    """Destination of the first definition of *ref_id* (ASCII case-insensitive)."""
    wanted = ref_id.lower()
    for found_id, dest in extract_references(content):
        if found_id.lower() == wanted:
            return dest
    return None


def has_reference(content: str, ref_id: str) -> bool:
    """Whether a definition of *ref_id* exists."""
    return get_reference_dest(content, ref_id) is not None


# ---------------------------------------------------------------------------
# Headings and links
# ---------------------------------------------------------------------------


def _iter_headings(lines: Sequence[str]) -> Iterator[tuple[int, Heading]]:
    """``(line index, heading)`` pairs outside fenced code blocks."""
    in_fence = False
    for index, line in enumerate(lines):
        stripped = line.strip()
        if _FENCE_PATTERN.match(stripped):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_PATTERN.match(stripped)
        if match:
            yield index, Heading(level=len(match.group(1)), text=(match.group(2) or "").strip())


def extract_headings(content: str) -> list[Heading]:
    """Extract ATX headings, skipping fenced code blocks."""
    return [heading for _index, heading in _iter_headings(split_lines(content))]


def find_heading_line(content: str, heading_text: str, level: int | None = None) -> int | None:
    """0-based line index of the first heading named *heading_text*.

    With *level* set, only headings of that level match. Headings inside
    fenced code blocks are ignored.
    """
    for index, heading in _iter_headings(split_lines(content)):
        if heading.text == heading_text and (level is None or heading.level == level):
            return index
    return None


def extract_links(content: str) -> list[Link]:
    """Extract inline ``[text](dest)`` links in document order."""
    return [
        Link(text=match.group(1), dest=match.group(2))
        for match in _INLINE_LINK_PATTERN.finditer(content)
    ]


# ---------------------------------------------------------------------------
# Frontmatter
# ---------------------------------------------------------------------------


def extract_frontmatter_prefix(content: str) -> str | None:
    """Value of ``PREFIX:`` inside the first ``---`` ... ``---`` block."""
    lines = split_lines(content)
    try:
        start = next(i for i, line in enumerate(lines) if line.strip() == FRONTMATTER_DELIMITER)
    except StopIteration:
        return None

    prefix: str | None = None
    for line in lines[start + 1 :]:
        stripped = line.strip()
        if stripped == FRONTMATTER_DELIMITER:
            break
        if stripped.startswith("PREFIX:"):
            prefix = stripped[len("PREFIX:") :].strip()
    return prefix
