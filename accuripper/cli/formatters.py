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

from accuripper.models.stats import DownloadStats, RipStats
from accuripper.models.track import Channel
from accuripper.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ChannelFetchError": [
            "• Check that the category URL points to a channel listing page.",
            "• The catalog may be temporarily unavailable. Try again later.",
        ],
        "StoreError": [
            "• Check that the metadata store is reachable and writable.",
            "• For the redis backend, verify `redis_host` and `redis_port`.",
            "• For the sqlite backend, verify `sqlite_path`.",
        ],
        "ConfigurationError": [
            "• Fix the reported value in the configuration file.",
            "• Run `accuripper init --force` to regenerate a default config.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• A request timed out. Check your internet connection.",
            "• Raise `request_timeout` or `read_timeout` in the configuration.",
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
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in sorted(config_data.items()))
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_channels_table(channels: list[Channel]):
    """Lists the channels registered in the store."""
    console = Console()
    if not channels:
        console.print("[dim]No channels stored yet. Run `accuripper rip` first.[/dim]")
        return

    table = Table(title=f"Stored Channels ({len(channels)})", box=box.ROUNDED)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Channel", style="cyan")
    table.add_column("ID", style="dim")
    for i, channel in enumerate(channels, 1):
        table.add_row(str(i), channel.name, channel.id)
    console.print(table)


def print_stats_table(backend: str, location: str, total_tracks: int, total_channels: int):
    """Displays metadata store statistics."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()
    table.add_row("Backend:", backend)
    table.add_row("Location:", f"[dim]{location}[/dim]")
    table.add_row("Channels:", f"[green]{total_channels}[/green]")
    table.add_row("Tracks:", f"[green]{total_tracks}[/green]")
    console.print(Panel(table, title="[bold]Track Store[/bold]", border_style="cyan", expand=False))


def print_rip_summary(stats: RipStats):
    """Displays the final summary of an ingestion run."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right", width=20)
    table.add_column(justify="left")

    table.add_row("Channels:", f"[bold]{stats.channels_discovered}[/bold]")
    table.add_row("Exhausted:", f"[green]{stats.channels_exhausted}[/green]")
    if stats.channels_stopped:
        table.add_row("Stopped:", f"[yellow]{stats.channels_stopped}[/yellow]")
    table.add_row("✓ New Tracks:", f"[bold green]{stats.tracks_saved}[/bold green]")
    if stats.fetch_failures:
        table.add_row("⚠ Fetch Failures:", f"[yellow]{stats.fetch_failures}[/yellow]")
    if stats.persist_failures:
        table.add_row("✗ Persist Failures:", f"[bold red]{stats.persist_failures}[/bold red]")
    table.add_row("", "")
    table.add_row("Time Elapsed:", f"[blue]{format_duration(stats.elapsed)}[/blue]")

    console.print()
    console.print(
        Panel(
            table,
            title="📻 [bold]Rip Complete![/bold]",
            border_style="green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )


def print_download_summary(stats: DownloadStats):
    """Displays the final summary of a download session."""
    console = Console()
    duration_s = stats.elapsed

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("Scanned:", str(stats.tracks_scanned))
    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{stats.tracks_downloaded}[/bold green]"
    )
    if stats.used_fallback:
        stats_table.add_row("↺ Via Fallback:", f"[yellow]{stats.used_fallback}[/yellow]")
    if stats.tracks_skipped_exists:
        stats_table.add_row(
            "○ Skipped:", f"[yellow]{stats.tracks_skipped_exists} (exists)[/yellow]"
        )
    if stats.tracks_failed:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.tracks_failed}[/bold red]")

    stats_table.add_row("", "")
    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"
    )
    avg_speed = stats.total_size_downloaded / duration_s if duration_s > 0 else 0
    stats_table.add_row("Avg. Speed:", f"[magenta]{format_size(avg_speed)}/s[/magenta]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")
    stats_table.add_row("Peak Concurrent:", f"[green]{stats.peak_in_flight}[/green]")

    console.print()
    console.print(
        Panel(
            stats_table,
            title="🎵 [bold]Download Complete![/bold]",
            border_style="green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
