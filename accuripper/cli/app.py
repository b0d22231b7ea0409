"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import signal
from contextlib import suppress
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from accuripper import __version__
from accuripper.api import CatalogClient, ChannelSource, TrackSource
from accuripper.core.download_manager import DownloadManager
from accuripper.core.ripper import Ripper
from accuripper.media import HttpByteSource
from accuripper.models.config import RipperConfig
from accuripper.storage import ConfigManager, SqliteTrackStore, open_store
from accuripper.utils.structured_logger import create_structured_logger

from .formatters import (
    print_channels_table,
    print_config,
    print_download_summary,
    print_rip_summary,
    print_stats_table,
)

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
log = logging.getLogger("accuripper")

app = typer.Typer(
    name="accuripper",
    help=(
        "Discovers AccuRadio channels, records every track they play and"
        " downloads the audio. Use 'accuripper <command> --help' for more info."
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
    return base_dir.expanduser() / "accuripper"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _config_file(ctx: typer.Context) -> Path:
    return (ctx.obj or {}).get("config_file", CONFIG_FILE)


def _load_config(ctx: typer.Context, **cli_options) -> RipperConfig:
    return ConfigManager(_config_file(ctx)).load_config(cli_options)


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    """
    The first SIGINT/SIGTERM sets ``stop_event`` and lets running work finish;
    a second SIGINT falls through to the default handler and aborts.
    """
    loop = asyncio.get_running_loop()

    def _request_stop() -> None:
        if stop_event.is_set():
            return
        stop_event.set()
        console.print(
            "\n[yellow]⚠️  Stop requested. Finishing work in progress"
            " (press Ctrl+C again to abort).[/yellow]"
        )
        loop.remove_signal_handler(signal.SIGINT)

    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops.
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _request_stop)


def _create_events(config: RipperConfig, command: str):
    if not config.log_dir:
        return None, None, None
    base, ingest, downloads = create_structured_logger(
        Path(config.log_dir).expanduser(), enable_json=True
    )
    base.set_session_context(command=command, backend=config.backend)
    log.info(f"Writing structured events to [dim]{base.json_path}[/dim]")
    return base, ingest, downloads


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        help=f"Path to the configuration file (default: {CONFIG_FILE}).",
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """AccuRadio channel ripper"""
    if version:
        console.print(f"[bold]accuripper[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    logging.getLogger("accuripper").setLevel("DEBUG" if verbose >= 1 else "INFO")
    ctx.obj = {"config_file": config_file.expanduser() if config_file else CONFIG_FILE}

    if show_config:
        config = _load_config(ctx)
        print_config(
            _config_file(ctx),
            {key: getattr(config, key) for key in RipperConfig.get_ini_keys()},
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    ctx: typer.Context,
    backend: str | None = typer.Option(
        None, "--backend", "-b", help="Metadata store backend: sqlite or redis."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with default values."""
    config_file = _config_file(ctx)
    if config_file.exists() and not force:
        console.print(
            f"[yellow]Configuration file already exists at '{config_file}'.[/yellow]"
            " Use [cyan]--force[/cyan] to overwrite it."
        )
        raise typer.Exit(code=1)

    settings = {"backend": backend} if backend else {}
    ConfigManager(config_file).save_new_config(settings)
    console.print(f"\n[bold green]✓ Configuration saved to '{config_file}'[/bold green]")
    console.print("Ready to rip! Try: [cyan]accuripper rip[/cyan]")


@app.command()
def rip(
    ctx: typer.Context,
    category_url: str | None = typer.Argument(
        None, help="Category page listing the channels to rip."
    ),
    backend: str | None = typer.Option(
        None, "--backend", "-b", help="Metadata store backend: sqlite or redis."
    ),
    stall_threshold: int | None = typer.Option(
        None,
        "--stall-threshold",
        help="Consecutive fetches without a new track before a channel is abandoned.",
    ),
    log_dir: str | None = typer.Option(
        None, "--log-dir", help="Write JSONL event logs to this directory."
    ),
):
    """Discover channels and record every track they play."""
    config = _load_config(
        ctx,
        category_url=category_url,
        backend=backend,
        stall_threshold=stall_threshold,
        log_dir=log_dir,
    )

    async def _rip_async():
        stop_event = asyncio.Event()
        _install_stop_handlers(stop_event)
        base_events, ingest_events, _ = _create_events(config, "rip")
        try:
            async with (
                CatalogClient(
                    request_timeout=config.request_timeout,
                    connect_timeout=config.connect_timeout,
                    read_timeout=config.read_timeout,
                ) as client,
                open_store(config) as store,
            ):
                await store.create()
                ripper = Ripper(
                    ChannelSource(client, config.category_url),
                    TrackSource(client, config.playlist_url),
                    store,
                    stop_event=stop_event,
                    stall_threshold=config.stall_threshold,
                    events=ingest_events,
                )
                console.print(
                    f"[bold cyan]📻 Ripping channels from {config.category_url}[/bold cyan]"
                )
                return await ripper.rip()
        finally:
            if base_events:
                base_events.close()

    print_rip_summary(asyncio.run(_rip_async()))


@app.command(name="download")
def download_command(
    ctx: typer.Context,
    downloads_dir: str | None = typer.Option(
        None, "-o", "--output", help="Directory to download tracks into."
    ),
    workers: int | None = typer.Option(
        None, "-w", "--workers", help="Number of simultaneous downloads (default 16)."
    ),
    backend: str | None = typer.Option(
        None, "--backend", "-b", help="Metadata store backend: sqlite or redis."
    ),
    log_dir: str | None = typer.Option(
        None, "--log-dir", help="Write JSONL event logs to this directory."
    ),
):
    """Download every recorded track that is not on disk yet."""
    config = _load_config(
        ctx,
        downloads_dir=downloads_dir,
        max_workers=workers,
        backend=backend,
        log_dir=log_dir,
    )

    async def _download_async():
        stop_event = asyncio.Event()
        _install_stop_handlers(stop_event)
        base_events, _, download_events = _create_events(config, "download")
        try:
            async with (
                CatalogClient(
                    max_connections=config.max_workers,
                    request_timeout=config.request_timeout,
                    connect_timeout=config.connect_timeout,
                    read_timeout=config.read_timeout,
                ) as client,
                open_store(config) as store,
            ):
                await store.create()
                manager = DownloadManager(
                    store,
                    HttpByteSource(client),
                    Path(config.downloads_dir).expanduser(),
                    max_workers=config.max_workers,
                    stop_event=stop_event,
                    events=download_events,
                )
                console.print("[bold cyan]🎵 Starting download session...[/bold cyan]")
                return await manager.download_all()
        finally:
            if base_events:
                base_events.close()

    print_download_summary(asyncio.run(_download_async()))


@app.command()
def channels(
    ctx: typer.Context,
    backend: str | None = typer.Option(
        None, "--backend", "-b", help="Metadata store backend: sqlite or redis."
    ),
):
    """List the channels recorded in the metadata store."""
    config = _load_config(ctx, backend=backend)

    async def _channels():
        async with open_store(config) as store:
            await store.create()
            return await store.get_channels()

    print_channels_table(asyncio.run(_channels()))


@app.command()
def stats(
    ctx: typer.Context,
    backend: str | None = typer.Option(
        None, "--backend", "-b", help="Metadata store backend: sqlite or redis."
    ),
):
    """Show statistics from the metadata store."""
    config = _load_config(ctx, backend=backend)

    async def _get_stats():
        async with open_store(config) as store:
            await store.create()
            return await store.count_tracks(), len(await store.get_channels())

    total_tracks, total_channels = asyncio.run(_get_stats())
    if config.backend == "redis":
        location = f"redis://{config.redis_host}:{config.redis_port}/{config.redis_db}"
    else:
        location = str(Path(config.sqlite_path).resolve())
    print_stats_table(config.backend, location, total_tracks, total_channels)


@app.command()
def vacuum(ctx: typer.Context):
    """Optimize the SQLite track database."""
    config = _load_config(ctx)
    if config.backend != "sqlite":
        console.print("[yellow]Vacuum only applies to the sqlite backend.[/yellow]")
        raise typer.Exit(code=1)

    async def _vacuum():
        console.print("[cyan]Optimizing track database...[/cyan]")
        store = SqliteTrackStore(Path(config.sqlite_path))
        await store.create()
        await store.vacuum()

    asyncio.run(_vacuum())
    console.print("[green]✓ Database optimized.[/green]")
