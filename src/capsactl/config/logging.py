"""Logging for capsactl: structlog on top of stdlib ``logging``.

stdout carries command results, so log lines always go to stderr, as
colored console text or as JSON lines with ``--log-json``. ``--verbose``
lowers only the ``capsactl`` loggers to DEBUG; libraries stay at WARNING.

Several agents can work on one task file, so every line carries the
acting agent (``@name`` or ``anonymous``) bound through structlog
contextvars.
"""

from __future__ import annotations

import logging
import sys

import structlog

PACKAGE_LOGGER = "capsactl"
ANONYMOUS_AGENT = "anonymous"


def _pre_chain() -> list[structlog.types.Processor]:
    """Processors shared by structlog loggers and stdlib ``logging`` records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _stderr_handler(*, log_json: bool) -> logging.Handler:
    renderer: structlog.types.Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def bind_agent(agent_marker: str | None) -> None:
    """Tag subsequent log lines with the acting agent."""
    structlog.contextvars.bind_contextvars(agent=agent_marker or ANONYMOUS_AGENT)


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    agent_marker: str | None = None,
) -> None:
    """Route all logging to a single stderr handler.

    Safe to call more than once: the root handler is replaced, not stacked.
    """
    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_stderr_handler(log_json=log_json))
    root.setLevel(logging.WARNING)

    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
    bind_agent(agent_marker)
