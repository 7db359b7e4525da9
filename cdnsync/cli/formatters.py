"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cdnsync.cdn.rating import UNREACHABLE
from cdnsync.cdn.selector import CandidateHost
from cdnsync.models.config import SyncConfig
from cdnsync.models.stats import SyncStats
from cdnsync.utils.formatting import format_duration, format_latency, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "NoHostAvailableError": [
            "• Check your internet connection.",
            "• Run `cdn-sync rate` to see how each CDN host responds.",
            "• Use --cdn-url to point at a specific mirror.",
        ],
        "ManifestUnavailableError": [
            "• The CDN may be updating its file list; try again in a few minutes.",
            "• Run `cdn-sync rate` and retry with a different host via --cdn-url.",
        ],
        "TransportFailureError": [
            "• A network connection issue interrupted a download.",
            "• Re-run the sync; completed files will not be downloaded again.",
        ],
        "SyncIncompleteError": [
            "• Some files did not match their published hash.",
            "• This usually clears up once CDN caches refresh; retry in 15 minutes.",
            "• Use --force to rehash every local file.",
        ],
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `cdn-sync init --force` to write a fresh default file.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the raw configuration file values."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content or "[dim](empty)[/dim]",
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def _enabled(flag: bool) -> str:
    return "✓ Enabled" if flag else "✗ Disabled"


def print_validation_table(config: SyncConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row(
        "CDN:",
        f"[green]{config.cdn_url}[/green]" if config.cdn_url else "Automatic (rated)",
    )
    table.add_row("HTTPS:", _enabled(config.use_https))
    table.add_row("ASN:", str(config.asn) if config.asn else "[dim]unknown[/dim]")
    table.add_row("Groups:", ", ".join(config.groups) or "[dim]whole manifest[/dim]")
    table.add_row("Force Rehash:", _enabled(config.force))
    table.add_row(
        "Retries:",
        "Ask" if config.interactive else f"Automatic (up to {config.max_retries})",
    )
    table.add_row(
        "Unverified Suffixes:", ", ".join(config.verify_exempt_suffixes) or "-"
    )
    table.add_row("Executable Suffixes:", ", ".join(config.executable_suffixes) or "-")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_rating_table(hosts: list[CandidateHost], console: Console | None = None):
    """Lists every CDN host best-first with its score and latency."""
    console = console or Console()
    table = Table(title="CDN Host Ratings", box=box.SIMPLE_HEAVY)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Host", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Latency", justify="right")
    table.add_column("Edge Network", style="dim")

    for rank, host in enumerate(hosts, 1):
        if host.score == UNREACHABLE:
            score = "[red]unreachable[/red]"
        else:
            score = f"[green]{host.score}[/green]"
        table.add_row(
            str(rank),
            host.address,
            score,
            format_latency(host.latency),
            host.edge_network or "-",
        )
    console.print(table)


def print_summary_panel(stats: SyncStats, duration_s: float):
    """Displays the final summary of the sync session."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{stats.files_downloaded}[/bold green]"
    )
    stats_table.add_row("○ Up to date:", f"[blue]{stats.files_checked}[/blue]")
    if stats.retries > 0:
        stats_table.add_row("↻ Retries:", f"[yellow]{stats.retries}[/yellow]")
    if stats.files_skipped_mismatch > 0:
        stats_table.add_row(
            "✗ Unverified:",
            f"[bold red]{stats.files_skipped_mismatch}[/bold red]",
        )

    stats_table.add_row("", "")
    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"
    )
    avg_speed = stats.total_size_downloaded / duration_s if duration_s > 0 else 0
    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
    )
    if stats.peak_speed_bps > 0:
        stats_table.add_row(
            "Peak Speed:",
            f"[magenta]{format_size(int(stats.peak_speed_bps))}/s[/magenta]",
        )
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if stats.is_complete:
        title = "[bold]Sync Complete![/bold]"
        border_color = "green"
    else:
        title = "[bold]Sync Finished With Unverified Files[/bold]"
        border_color = "yellow"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
