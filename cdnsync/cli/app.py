"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from cdnsync import __version__
from cdnsync.cdn.selector import ActiveHost, HostSelector
from cdnsync.exceptions import CdnSyncError, SyncIncompleteError
from cdnsync.storage.config_manager import ConfigManager
from cdnsync.sync.downloader import Downloader
from cdnsync.sync.engine import SyncEngine
from cdnsync.sync.retry import AutomaticRetryPolicy, InteractiveRetryPolicy
from cdnsync.utils.structured_logger import create_event_logger

from .formatters import (
    print_config,
    print_rating_table,
    print_summary_panel,
    print_validation_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("cdnsync")

app = typer.Typer(
    name="cdn-sync",
    help=(
        "Keep a directory in sync with a CDN file manifest, using the fastest"
        " available CDN host. Use 'cdn-sync <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "cdn-sync"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration file."
    ),
):
    """CDN Sync CLI"""
    if version:
        console.print(f"[bold]cdn-sync[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("cdnsync").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]cdn-sync init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        print_config(CONFIG_FILE, ConfigManager(CONFIG_FILE).get_raw_settings())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing file without asking."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config()
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def rate(
    asn: int | None = typer.Option(
        None, "--asn", help="Autonomous system number of your network."
    ),
):
    """Rate every CDN host and list them best-first."""
    config = ConfigManager(CONFIG_FILE).load_config(
        {"asn": asn} if asn is not None else None
    )

    async def _rate_async():
        selector = HostSelector(use_https=config.use_https)
        with console.status("[cyan]Rating CDN hosts...[/cyan]"):
            await selector.rate_all(config.asn, is_initial=False)
        print_rating_table(selector.ranked(), console)

    asyncio.run(_rate_async())


@app.command(name="sync")
def sync_command(
    directory: Path = typer.Argument(  # noqa: B008
        Path("."), help="Directory to synchronize.", file_okay=False
    ),
    groups: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--group",
        "-g",
        help="Manifest directory group to sync (repeatable). Default: whole manifest.",
    ),
    cdn_url: str | None = typer.Option(
        None, "--cdn-url", help="Use this CDN origin and skip host rating."
    ),
    force: bool | None = typer.Option(
        None, "--force/--no-force", "-f", help="Ignore stored hashes and rehash files."
    ),
    asn: int | None = typer.Option(
        None, "--asn", help="Autonomous system number of your network."
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Never prompt; retry failures automatically."
    ),
    max_retries: int | None = typer.Option(
        None, "--max-retries", help="Automatic retries per file (with --yes)."
    ),
    log_dir: Path | None = typer.Option(  # noqa: B008
        None, "--log-dir", help="Write a JSON-lines event log to this directory."
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Disable the live progress display."
    ),
):
    """Download missing or changed files from the CDN."""
    cli_options = {
        key: value
        for key, value in {
            "groups": groups or None,
            "cdn_url": cdn_url,
            "force": force,
            "asn": asn,
            "max_retries": max_retries,
            "interactive": False if yes else None,
        }.items()
        if value is not None
    }
    config = ConfigManager(CONFIG_FILE).load_config(cli_options)
    local_dir = directory.expanduser().resolve()

    async def _sync_async():
        events = create_event_logger(log_dir)
        events.logger.set_session_context(directory=str(local_dir))
        try:
            if config.cdn_url:
                log.info(f"Using custom CDN URL: {config.cdn_url}")
                host = ActiveHost.from_override(config.cdn_url)
            else:
                selector = HostSelector(use_https=config.use_https, events=events)
                with console.status("[cyan]Rating CDN hosts...[/cyan]"):
                    host = await selector.rate_and_select(config.asn)

            async with (
                ProgressManager(console, enabled=not no_progress) as progress_manager,
                Downloader() as downloader,
            ):
                if config.interactive:
                    policy = InteractiveRetryPolicy(progress_manager)
                else:
                    policy = AutomaticRetryPolicy(config.max_retries)
                engine = SyncEngine(
                    downloader,
                    policy,
                    progress_manager=progress_manager,
                    verify_exempt_suffixes=config.verify_exempt_suffixes,
                    executable_suffixes=config.executable_suffixes,
                    events=events,
                )
                start_time = time.monotonic()
                stats = await engine.run(host, local_dir, config.groups, config.force)
                duration = time.monotonic() - start_time
        finally:
            events.close()

        print_summary_panel(stats, duration)
        if not stats.is_complete:
            raise SyncIncompleteError(
                f"{stats.files_skipped_mismatch} file(s) failed verification: "
                + ", ".join(stats.skipped_paths)
            )

    asyncio.run(_sync_async())


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except CdnSyncError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
