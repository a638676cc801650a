"""Shared service-layer helper functions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from capsactl.domain.edit import MultipleMatches, PatternNotFound, ValidationError
from capsactl.infrastructure.filesystem import relative_display
from capsactl.infrastructure.resolver import AmbiguousNoteError, NoteResolutionError
from capsactl.services.result import ServiceResult

if TYPE_CHECKING:
    from pathlib import Path


def edit_conflict(op: str, exc: ValidationError) -> ServiceResult:
    """Map an edit-engine failure to ``EDIT_CONFLICT``.

    The file changed between read and locate (a concurrent writer or a
    manual edit). Re-running the command re-reads the file.
    """
    detail: dict[str, object] = {"reason": exc.code}
    if isinstance(exc, PatternNotFound | MultipleMatches):
        detail["pattern"] = exc.pattern
    if isinstance(exc, MultipleMatches):
        detail["count"] = exc.count
    return ServiceResult.failure(
        op,
        "EDIT_CONFLICT",
        f"Task file changed underneath this edit: {exc}",
        hint="Re-run the command; the file is re-read on every call",
        **detail,
    )


def resolution_failure(op: str, exc: NoteResolutionError, root: Path) -> ServiceResult:
    """Map a note-resolution error to ``NOTE_NOT_FOUND`` / ``NOTE_AMBIGUOUS``."""
    detail: dict[str, object] = {"reference": exc.reference}
    if isinstance(exc, AmbiguousNoteError):
        detail["candidates"] = [relative_display(path, root) for path in exc.candidates]
        detail["hint"] = "Use a more specific reference (date/prefix or full timestamp)"
    return ServiceResult.failure(op, exc.code, str(exc), **detail)
