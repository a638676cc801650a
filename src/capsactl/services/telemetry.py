"""Command traces for ``--verbose`` output.

One :class:`CommandTrace` covers one CLI command. The outermost
``@traced`` service method opens it, service code adds what it learned
about the capsa through :func:`record` (task id, note matches, number of
edit operations, whether the task file was written), and the finished
trace lands in ``ServiceResult.meta["telemetry"]``.

When ``--verbose`` is off, ``@traced`` and :func:`record` cost a single
ContextVar lookup.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from capsactl.services.result import ServiceResult

log = structlog.get_logger("capsactl.telemetry")

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_trace: ContextVar[CommandTrace | None] = ContextVar("_current_trace", default=None)


@dataclass
class CommandTrace:
    """Timing and capsa facts for a single service call."""

    name: str
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    facts: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.facts:
            data["facts"] = dict(self.facts)
        return data


def _log_trace(trace: CommandTrace, *, ok: bool) -> None:
    log.debug(
        "command.complete",
        command=trace.name,
        duration_ms=round(trace.duration_ms, 2),
        ok=ok,
        **trace.facts,
    )


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Trace a service method and attach the trace to its ServiceResult.

    Nested traced calls (``release`` falling back to ``log``) add to the
    trace that is already open instead of starting a new one.
    """

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _verbose_enabled.get() or _current_trace.get() is not None:
            return func(*args, **kwargs)

        trace = CommandTrace(name=func.__qualname__)
        token = _current_trace.set(trace)
        try:
            result = func(*args, **kwargs)
        except Exception:
            trace.end()
            _log_trace(trace, ok=False)
            raise
        finally:
            _current_trace.reset(token)
        trace.end()

        if isinstance(result, ServiceResult):
            _log_trace(trace, ok=result.ok)
            meta = {**(result.meta or {}), "telemetry": trace.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        _log_trace(trace, ok=True)
        return result

    return wrapper


def record(**facts: Any) -> None:
    """Add facts to the running command's trace; ignored outside a trace."""
    if not _verbose_enabled.get():
        return
    trace = _current_trace.get()
    if trace is not None:
        trace.facts.update(facts)


def enable_telemetry() -> None:
    """Enable command traces (called by AppContext for ``--verbose``)."""
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    _verbose_enabled.set(False)
