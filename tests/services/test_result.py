"""Tests for ServiceResult and ServiceError."""

import json

from capsactl.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="task_add", data={"id": "TASK-01"})
        assert result.ok is True
        assert result.op == "task_add"
        assert result.data == {"id": "TASK-01"}
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_error_construction(self) -> None:
        error = ServiceError(code="TASK_NOT_FOUND", message="Task 'TASK-09' not found")
        result = ServiceResult(ok=False, op="task_show", error=error)
        assert result.ok is False
        assert result.error is not None
        assert result.error.code == "TASK_NOT_FOUND"
        assert result.error.detail == {}

    def test_failure_shorthand(self) -> None:
        result = ServiceResult.failure(
            "task_take", "ALREADY_TAKEN", "taken", id="TASK-01", owner="@alice"
        )
        assert result.ok is False
        assert result.op == "task_take"
        assert result.error is not None
        assert result.error.detail == {"id": "TASK-01", "owner": "@alice"}

    def test_json_serialization(self) -> None:
        result = ServiceResult(
            ok=True,
            op="task_list",
            data={"count": 0},
            warnings=["Unknown status filter 'x', showing all"],
        )
        parsed = json.loads(result.model_dump_json())
        assert parsed["ok"] is True
        assert parsed["data"] == {"count": 0}
        assert parsed["warnings"] == ["Unknown status filter 'x', showing all"]

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="x")
        try:
            result.ok = False  # type: ignore[misc]
            raise AssertionError("Should have raised")
        except Exception:
            pass
