"""Root CLI group for capsactl with global flags and command registration."""

from __future__ import annotations

import click

from capsactl import __version__
from capsactl.commands import register_commands
from capsactl.commands._context import AppContext
from capsactl.config.settings import CapsaSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="capsactl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--caps", default=None, help="Capsa name (default: the default capsa).")
@click.option("--global", "global_scope", is_flag=True, help="Ignore agent capsa prefixing.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    caps: str | None,
    global_scope: bool,
) -> None:
    """capsactl — markdown notes and agent-shared tasks."""
    ctx.ensure_object(dict)
    settings = CapsaSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        caps=caps,
        global_scope=global_scope,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
