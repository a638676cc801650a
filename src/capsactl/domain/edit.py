"""Validated text edits — the only way capsa files are mutated.

Every operation is checked against the current content before it is
applied. Callers never edit "line 5"; they edit "the line containing X",
and the edit fails loudly if X vanished or appears more than once. That
uniqueness check is the entire concurrency story for shared files.

Pure functions, no I/O. :func:`apply_edits` is all-or-nothing: the first
failing operation raises and the caller's original string is untouched.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ValidationError(Exception):
    """An edit operation did not match the content it was applied to."""

    code = "VALIDATION_FAILED"


class PatternNotFound(ValidationError):
    """The locator pattern does not occur in the content."""

    code = "PATTERN_NOT_FOUND"

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        super().__init__(f"Pattern not found: {pattern!r}")


class MultipleMatches(ValidationError):
    """The locator pattern occurs more than once (expected exactly one)."""

    code = "MULTIPLE_MATCHES"

    def __init__(self, pattern: str, count: int) -> None:
        self.pattern = pattern
        self.count = count
        super().__init__(f"Pattern found {count} times (expected exactly 1): {pattern!r}")


class InvalidLine(ValidationError):
    """An insertion index lies beyond the end of the content."""

    code = "INVALID_LINE"

    def __init__(self, line: int, max_line: int) -> None:
        self.line = line
        self.max_line = max_line
        super().__init__(f"Invalid line {line} (max: {max_line})")


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Replace:
    """Replace ``old`` with ``new``; ``old`` must occur exactly once."""

    old: str
    new: str


@dataclass(frozen=True)
class InsertAtLine:
    """Insert ``content`` as a new line at 0-based index ``line``."""

    line: int
    content: str


@dataclass(frozen=True)
class Append:
    """Append ``content`` at the end of the file."""

    content: str


@dataclass(frozen=True)
class DeleteLine:
    """Remove every line equal to ``content``; at least one must exist."""

    content: str


EditOp = Replace | InsertAtLine | Append | DeleteLine


# ---------------------------------------------------------------------------
# Line helpers
# ---------------------------------------------------------------------------


def split_lines(content: str) -> list[str]:
    """Split *content* on ``\\n`` without a trailing empty element.

    A trailing ``\\r`` is dropped from each line so CRLF files compare
    equal to their LF rendering.
    """
    if not content:
        return []
    lines = content.split("\n")
    if content.endswith("\n"):
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def line_ending(content: str) -> str:
    """``\\r\\n`` if the first line break in *content* is CRLF, else ``\\n``."""
    first = content.find("\n")
    return "\r\n" if first > 0 and content[first - 1] == "\r" else "\n"


def _join_like(lines: list[str], original: str) -> str:
    """Join *lines* with the line ending and final newline of *original*.

    Files with mixed endings come back in the style of their first line.
    """
    newline = line_ending(original)
    suffix = newline if original.endswith("\n") else ""
    return newline.join(lines) + suffix


def locate_unique(content: str, predicate: Callable[[str], bool]) -> tuple[int, str]:
    """Return ``(index, line)`` of the single line satisfying *predicate*.

    Raises:
        PatternNotFound: no line matches.
        MultipleMatches: more than one line matches.
    """
    matches = [(i, line) for i, line in enumerate(split_lines(content)) if predicate(line)]
    if not matches:
        raise PatternNotFound(getattr(predicate, "pattern", repr(predicate)))
    if len(matches) > 1:
        raise MultipleMatches(getattr(predicate, "pattern", repr(predicate)), len(matches))
    return matches[0]


class LineContaining:
    """Predicate for :func:`locate_unique`: line contains ``pattern``.

    With ``prefix`` set, the stripped line must also start with it.
    """

    def __init__(self, pattern: str, *, prefix: str | None = None) -> None:
        self.pattern = pattern
        self.prefix = prefix

    def __call__(self, line: str) -> bool:
        if self.pattern not in line:
            return False
        return self.prefix is None or line.strip().startswith(self.prefix)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def apply_edits(content: str, edits: Iterable[EditOp]) -> str:
    """Apply *edits* in order and return the new content.

    Raises the first :class:`ValidationError` encountered; no partially
    edited text is ever returned.
    """
    result = content
    for edit in edits:
        result = apply_edit(result, edit)
    return result


def apply_edit(content: str, edit: EditOp) -> str:
    """Apply a single edit operation."""
    if isinstance(edit, Replace):
        count = content.count(edit.old) if edit.old else 0
        if count == 0:
            raise PatternNotFound(edit.old)
        if count > 1:
            raise MultipleMatches(edit.old, count)
        return content.replace(edit.old, edit.new, 1)

    if isinstance(edit, InsertAtLine):
        lines = split_lines(content)
        if edit.line < 0 or edit.line > len(lines):
            raise InvalidLine(edit.line, len(lines))
        lines.insert(edit.line, edit.content)
        return _join_like(lines, content)

    if isinstance(edit, Append):
        separator = "" if not content or content.endswith("\n") else line_ending(content)
        return f"{content}{separator}{edit.content}"

    if isinstance(edit, DeleteLine):
        lines = split_lines(content)
        kept = [line for line in lines if line != edit.content]
        if len(kept) == len(lines):
            raise PatternNotFound(edit.content)
        return _join_like(kept, content)

    msg = f"Unknown edit operation: {edit!r}"
    raise TypeError(msg)
