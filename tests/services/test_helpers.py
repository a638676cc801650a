"""Tests for shared service helpers."""

from pathlib import Path

from capsactl.domain.edit import InvalidLine, MultipleMatches, PatternNotFound
from capsactl.infrastructure.resolver import AmbiguousNoteError, NoteNotFoundError
from capsactl.services._helpers import edit_conflict, resolution_failure


class TestEditConflict:
    def test_multiple_matches(self) -> None:
        result = edit_conflict("task_take", MultipleMatches("[TASK-01]", 2))
        assert result.error is not None
        assert result.error.code == "EDIT_CONFLICT"
        assert result.error.detail["reason"] == "MULTIPLE_MATCHES"
        assert result.error.detail["pattern"] == "[TASK-01]"
        assert result.error.detail["count"] == 2
        assert "hint" in result.error.detail

    def test_pattern_not_found(self) -> None:
        result = edit_conflict("task_release", PatternNotFound("[TASK-02]"))
        assert result.error is not None
        assert "count" not in result.error.detail

    def test_invalid_line(self) -> None:
        result = edit_conflict("task_comment", InvalidLine(9, 3))
        assert result.error is not None
        assert result.error.detail["reason"] == "INVALID_LINE"
        assert "pattern" not in result.error.detail


class TestResolutionFailure:
    def test_not_found(self, tmp_path: Path) -> None:
        result = resolution_failure("resolve", NoteNotFoundError("x"), tmp_path)
        assert result.error is not None
        assert result.error.code == "NOTE_NOT_FOUND"
        assert result.error.detail == {"reference": "x"}

    def test_ambiguous_candidates_are_relative(self, tmp_path: Path) -> None:
        exc = AmbiguousNoteError("plan", [tmp_path / "note/plan-a.md", tmp_path / "note/plan-b.md"])
        result = resolution_failure("task_add", exc, tmp_path)
        assert result.error is not None
        assert result.error.detail["candidates"] == ["note/plan-a.md", "note/plan-b.md"]
