"""Typer CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.markup import escape

from .cluster import HazelcastClusterClient
from .config import CLIConfig, load_cli_config
from .context import RunContext
from .errors import UserCancelledError, make_error_string
from .logging_utils import get_logger, set_global_log_level, set_log_file
from .migration.cancel import build_cancel_stages
from .migration.models import make_migration_id
from .migration.runner import run_migration
from .migration.stages import ClientFactory, ClusterSession, build_status_stages
from .migration.start import build_start_stages
from .pipeline.base import FixedProvider
from .pipeline.executor import execute
from .pipeline.rendering import PlainStageRenderer, RichStageRenderer, StageRenderer

app = typer.Typer(add_completion=False, help="Start and follow data migrations on a Hazelcast migration cluster")
console = Console()
logger = get_logger("CLI")

BANNER = """Hazelcast Data Migration Tool
Selected data structures in the source cluster will be migrated to the target cluster.
"""

ConfigOption = typer.Option(None, "--config", "-c", help="Path to YAML config")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Show debug logs")
TimeoutOption = typer.Option(
    None, "--timeout", help="Give up after this many seconds (default: wait for the cluster)"
)
OutputDirOption = typer.Option(
    None,
    "--output-dir",
    "-o",
    help="Output directory for the migration report; the configured or current directory otherwise",
)


def make_client_factory(config: CLIConfig) -> ClientFactory:
    return lambda ctx: HazelcastClusterClient.connect(config.cluster)


def _setup(config_path: Optional[Path], verbose: bool, timeout: Optional[float] = None) -> CLIConfig:
    config = load_cli_config(config_path)
    set_log_file(config.log_path)
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.WARNING)
    set_global_log_level(level)
    if timeout is not None:
        config.migration.timeout = timeout
    return config


def _root_context(config: CLIConfig) -> RunContext:
    ctx = RunContext.background()
    if config.migration.timeout:
        return ctx.with_timeout(config.migration.timeout)
    return ctx


def _renderer() -> StageRenderer:
    if console.is_terminal:
        return RichStageRenderer(console)
    return PlainStageRenderer(console)


def _confirm(yes: bool) -> None:
    if yes:
        return
    try:
        proceed = typer.confirm("Proceed?", default=False)
    except typer.Abort as exc:
        raise UserCancelledError() from exc
    if not proceed:
        raise UserCancelledError()


def _run(action: Callable[[RunContext], str], ctx: RunContext) -> None:
    try:
        message = action(ctx)
    except KeyboardInterrupt:
        ctx.cancel()
        console.print()
        console.print(escape(make_error_string(UserCancelledError())), highlight=False)
        raise typer.Exit(code=1)
    except Exception as exc:
        logger.debug("Command failed", exc_info=True)
        console.print()
        console.print(escape(make_error_string(exc)), highlight=False)
        raise typer.Exit(code=1)
    console.print()
    console.print(f"[bold green]OK[/bold green] {escape(message)}", highlight=False)


@app.command()
def start(
    dmt_config: Path = typer.Argument(..., help="DMT configuration directory", metavar="DMT_CONFIG"),
    yes: bool = typer.Option(False, "--yes", help="Start the migration without confirmation"),
    output_dir: Optional[Path] = OutputDirOption,
    config_path: Optional[Path] = ConfigOption,
    timeout: Optional[float] = TimeoutOption,
    verbose: bool = VerboseOption,
) -> None:
    """Start the data migration."""

    config = _setup(config_path, verbose, timeout)
    console.print(BANNER, highlight=False)

    def action(ctx: RunContext) -> str:
        _confirm(yes)
        migration_id = make_migration_id()
        logger.info("Starting migration %s", migration_id)
        renderer = _renderer()
        session = ClusterSession(make_client_factory(config))
        try:
            execute(ctx, None, FixedProvider(*build_start_stages(session, migration_id, dmt_config)), renderer)
            run_migration(
                ctx,
                session,
                migration_id,
                output_dir or config.output_path,
                renderer,
                console,
                poll_interval=config.migration.poll_interval,
                start_timeout=config.migration.start_timeout,
            )
        finally:
            session.close()
        return "Migration completed successfully."

    _run(action, _root_context(config))


@app.command()
def status(
    output_dir: Optional[Path] = OutputDirOption,
    config_path: Optional[Path] = ConfigOption,
    timeout: Optional[float] = TimeoutOption,
    verbose: bool = VerboseOption,
) -> None:
    """Get status of the data migration in progress."""

    config = _setup(config_path, verbose, timeout)
    console.print(BANNER, highlight=False)

    def action(ctx: RunContext) -> str:
        renderer = _renderer()
        session = ClusterSession(make_client_factory(config))
        try:
            migration_id = execute(ctx, None, FixedProvider(*build_status_stages(session)), renderer)
            run_migration(
                ctx,
                session,
                migration_id,
                output_dir or config.output_path,
                renderer,
                console,
                poll_interval=config.migration.poll_interval,
                start_timeout=config.migration.start_timeout,
            )
        finally:
            session.close()
        return "Migration completed successfully."

    _run(action, _root_context(config))


@app.command()
def cancel(
    yes: bool = typer.Option(False, "--yes", help="Cancel the migration without confirmation"),
    config_path: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Cancel the data migration in progress."""

    config = _setup(config_path, verbose)

    def action(ctx: RunContext) -> str:
        _confirm(yes)
        session = ClusterSession(make_client_factory(config))
        try:
            migration_id = execute(ctx, None, FixedProvider(*build_cancel_stages(session)), _renderer())
        finally:
            session.close()
        return f"Requested cancellation of migration {migration_id}."

    _run(action, _root_context(config))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
