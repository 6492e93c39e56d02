"""
Main CLI interface for Playlist-Sorter

The CLI is built using Click and provides:
- sort: the interactive sorter screen
- playlists: one refresh, printed as a grid
- now-playing: the currently playing track
- create: create a playlist seeded with the current track
- config show: effective configuration (credentials redacted)
"""

import asyncio
import functools
import sys

import click
import yaml

from . import __version__
from .config.settings import get_settings, reload_settings
from .screen import SorterScreen, render, render_track
from .spotify.client import get_spotify_client
from .sync.coordinator import PlaylistSyncCoordinator
from .utils.exceptions import PlaylistSorterError
from .utils.logger import configure_from_settings, get_logger


logger = get_logger(__name__)


def print_banner():
    """Print application banner to console"""
    banner = """
╔═══════════════════════════════════════════════╗
║                Playlist-Sorter                ║
║                                               ║
║  Sort what you're hearing into your playlists ║
╚═══════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Logs the failure, prints a short message in red and exits with status 1
    (130 when interrupted).
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)  # Standard exit code for SIGINT
        except PlaylistSorterError as e:
            logger.debug(f"Command failed: {e}", exc_info=True)
            click.echo(click.style(f"Error: {e.message}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def build_coordinator() -> PlaylistSyncCoordinator:
    """
    Coordinator wired to the global settings and Spotify client

    Raises:
        click.ClickException: If the configuration is invalid
    """
    settings = get_settings()
    if not settings.validate():
        raise click.ClickException("Invalid configuration:\n  - " + "\n  - ".join(settings.errors))

    return PlaylistSyncCoordinator(
        get_spotify_client(),
        cancel_stale_refreshes=settings.sorter.cancel_stale_refreshes
    )


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Write debug messages to the log file')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
@handle_error
def cli(ctx, version, verbose, config):
    """
    Playlist-Sorter - file the song you're listening to into your Spotify playlists
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"Playlist-Sorter v{__version__}")
        return

    settings = reload_settings(config) if config else get_settings()

    if verbose:
        settings.logging.level = "DEBUG"
        ctx.obj['verbose'] = True
    configure_from_settings(settings)

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@handle_error
def sort():
    """Open the interactive sorter screen"""
    settings = get_settings()

    async def run():
        screen = SorterScreen(build_coordinator(), columns=settings.sorter.columns)
        await screen.run()

    asyncio.run(run())


@cli.command()
@handle_error
def playlists():
    """List the playlists you own or collaborate on"""
    settings = get_settings()

    async def run():
        coordinator = build_coordinator()
        coordinator.refresh()
        await coordinator.wait_idle()
        return coordinator.state.snapshot

    snapshot = asyncio.run(run())
    click.echo(render(snapshot, columns=settings.sorter.columns))
    if snapshot.load_error:
        sys.exit(1)


@cli.command(name='now-playing')
@handle_error
def now_playing():
    """Show the currently playing track"""
    async def run():
        coordinator = build_coordinator()
        await coordinator.load_currently_playing()
        return coordinator.state.snapshot.track

    click.echo(render_track(asyncio.run(run())))


@cli.command()
@click.argument('name')
@handle_error
def create(name):
    """Create a private playlist NAME containing the current track"""
    name = name.strip()
    if not name:
        raise click.BadParameter("Playlist name cannot be empty", param_hint="NAME")

    async def run():
        coordinator = build_coordinator()
        coordinator.refresh()
        await coordinator.wait_idle()
        if coordinator.state.snapshot.load_error:
            return None, coordinator.state.snapshot

        created = await coordinator.create_playlist(name)
        await coordinator.wait_idle()
        return created, coordinator.state.snapshot

    created, snapshot = asyncio.run(run())
    if created is None:
        message = snapshot.alert.message if snapshot.alert else "see the log for details"
        click.echo(click.style(f"Could not create playlist '{name}': {message}", fg='red'), err=True)
        sys.exit(1)

    entry = next((p for p in snapshot.playlists if p.uri == created.uri), created)
    click.echo(click.style(f"Created '{entry.name}' with {entry.total_items} track(s)", fg='green'))


@cli.group()
def config():
    """Configuration commands"""
    pass


@config.command()
@handle_error
def show():
    """Show the effective configuration"""
    settings = get_settings()
    source = settings.loaded_from or "defaults"
    click.echo(click.style(f"# Loaded from: {source}", fg='cyan'))
    click.echo(yaml.safe_dump(settings.to_dict(), default_flow_style=False, sort_keys=False))


def main():
    """Console entry point"""
    cli(obj={})


if __name__ == '__main__':
    main()
