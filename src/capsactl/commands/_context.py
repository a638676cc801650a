"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy capsa resolution and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from capsactl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from capsactl.config.settings import CapsaSettings
    from capsactl.infrastructure.capsa import Capsa
    from capsactl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``. The capsa is resolved
    lazily on first use so ``--help`` and ``--examples`` never touch
    (or auto-create) the notes home.
    """

    def __init__(self, settings: CapsaSettings) -> None:
        self.settings = settings
        self._capsa: Capsa | None = None

        # Configure structured logging
        from capsactl.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            agent_marker=settings.agent_marker,
        )

        # Enable telemetry context var when verbose
        if settings.verbose:
            from capsactl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def capsa(self) -> Capsa:
        """The selected capsa (resolved lazily on first access).

        A missing capsa is emitted as a ``CAPSA_NOT_FOUND`` failure.
        """
        if self._capsa is None:
            from capsactl.infrastructure.capsa import CapsaNotFoundError, locate_capsa
            from capsactl.services.result import ServiceResult

            try:
                self._capsa = locate_capsa(self.settings)
            except CapsaNotFoundError as exc:
                self.emit(
                    ServiceResult.failure(
                        "capsa",
                        exc.code,
                        str(exc),
                        name=exc.name,
                        hint="Check --caps, EMX_NOTE_HOME and EMX_NOTE_DEFAULT",
                    )
                )
        assert self._capsa is not None
        return self._capsa

    def emit(self, result: ServiceResult, *, quiet: bool | None = None) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.

        *quiet* overrides the global ``--quiet`` flag for one result.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet if quiet is None else quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            if output:
                click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
