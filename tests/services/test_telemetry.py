"""Tests for command traces: CommandTrace, record, @traced."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from capsactl.config.settings import CapsaSettings
from capsactl.infrastructure.capsa import Capsa
from capsactl.services.result import ServiceResult
from capsactl.services.task import TaskService
from capsactl.services.telemetry import (
    CommandTrace,
    _current_trace,
    disable_telemetry,
    enable_telemetry,
    record,
    traced,
)
from tests.conftest import write_daily


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """Ensure clean telemetry state for every test."""
    yield
    disable_telemetry()
    _current_trace.set(None)


class _Service:
    @traced
    def run(self) -> ServiceResult:
        record(task_id="TASK-01", edit_ops=2)
        return ServiceResult(ok=True, op="run", meta={"dry_run": True})

    @traced
    def outer(self) -> ServiceResult:
        record(released=0)
        return self.run()

    @traced
    def boom(self) -> ServiceResult:
        raise OSError("disk full")


class TestCommandTrace:
    def test_duration_before_end_is_zero(self) -> None:
        assert CommandTrace(name="test").duration_ms == 0.0

    def test_to_dict_without_facts(self) -> None:
        trace = CommandTrace(name="TaskService.show")
        trace.end()
        d = trace.to_dict()
        assert d["name"] == "TaskService.show"
        assert "facts" not in d

    def test_to_dict_with_facts(self) -> None:
        trace = CommandTrace(name="NoteService.resolve", facts={"matches": 2})
        assert trace.to_dict()["facts"] == {"matches": 2}


class TestRecord:
    def test_ignored_when_disabled(self) -> None:
        record(task_id="TASK-01")
        assert _current_trace.get() is None

    def test_ignored_outside_trace(self) -> None:
        enable_telemetry()
        record(task_id="TASK-01")
        assert _current_trace.get() is None


class TestTraced:
    def test_disabled_passthrough(self) -> None:
        result = _Service().run()
        assert result.meta == {"dry_run": True}

    def test_enabled_injects_trace(self) -> None:
        enable_telemetry()
        result = _Service().run()
        assert result.meta is not None
        assert result.meta["dry_run"] is True
        telemetry = result.meta["telemetry"]
        assert telemetry["name"] == "_Service.run"
        assert telemetry["facts"] == {"task_id": "TASK-01", "edit_ops": 2}

    def test_nested_call_shares_outer_trace(self) -> None:
        enable_telemetry()
        result = _Service().outer()
        assert result.meta is not None
        telemetry = result.meta["telemetry"]
        assert telemetry["name"] == "_Service.outer"
        assert telemetry["facts"] == {"released": 0, "task_id": "TASK-01", "edit_ops": 2}

    def test_trace_reset_after_call(self) -> None:
        enable_telemetry()
        _Service().run()
        assert _current_trace.get() is None

    def test_exception_propagates(self) -> None:
        enable_telemetry()
        with pytest.raises(OSError, match="disk full"):
            _Service().boom()
        assert _current_trace.get() is None


class TestTaskServiceFacts:
    def test_add_records_task_and_write(self, capsa: Capsa, settings: CapsaSettings) -> None:
        write_daily(capsa.path, "20240115", "103000")
        enable_telemetry()
        result = TaskService(capsa, settings).add("daily/20240115/103000")
        assert result.meta is not None
        assert result.meta["telemetry"]["facts"] == {
            "task_id": "TASK-01",
            "edit_ops": 1,
            "written": "TASK.md",
        }

    def test_dry_run_records_no_write(self, capsa: Capsa, settings: CapsaSettings) -> None:
        write_daily(capsa.path, "20240115", "103000")
        service = TaskService(capsa, settings)
        service.add("daily/20240115/103000")
        enable_telemetry()
        result = service.take("TASK-01", header="Today", dry_run=True)
        assert result.meta is not None
        facts = result.meta["telemetry"]["facts"]
        assert facts["task_id"] == "TASK-01"
        assert facts["edit_ops"] == 4
        assert "written" not in facts
