"""
Terminal front end of the playlist sorter

``render()`` turns a ``SorterSnapshot`` into text: a numbered grid of
playlist tiles followed by the current track, or one of the placeholders
("Loading Playlists", "Couldn't Load Playlists", "No Playlists Found")
when the collection is empty.

``SorterScreen`` drives an interactive session: it refreshes on appear,
reads commands, forwards them to the coordinator and redraws once the
triggered work has finished. Alerts are printed as soon as they are raised.
"""

import asyncio
import shutil
import threading
from typing import Callable, Optional

import click

from .spotify.models import Track
from .sync.coordinator import PlaylistSyncCoordinator
from .sync.state import AlertItem, SorterSnapshot
from .utils.helpers import chunked, truncate_text


HELP_TEXT = """Commands:
  <number>     add the current track to that playlist
  n <name>     create a playlist with the current track
  t            reload the currently playing track
  r            refresh playlists and current track
  d            dismiss the alert
  h            show this help
  q            quit"""


def render_track(track: Optional[Track], width: int = 80) -> str:
    """Footer line for the current track"""
    if track is None:
        return click.style("♪ Nothing playing", dim=True)
    text = f"♪ {track.name}"
    if track.artists:
        text += f" - {track.all_artists}"
    return click.style(truncate_text(text, width), bold=True)


def render_alert(alert: AlertItem) -> str:
    return click.style(f"{alert.title}: {alert.message}", fg='red', bold=True)


def render(snapshot: SorterSnapshot, columns: int = 3, width: int = 80, include_alert: bool = True) -> str:
    """
    Render a snapshot of the sorter screen

    Args:
        snapshot: State to render
        columns: Number of tiles per grid row
        width: Available terminal width
        include_alert: Append the pending alert, if any

    Returns:
        Multi-line text, styled with ANSI colors
    """
    lines = []

    if not snapshot.playlists:
        if snapshot.is_loading:
            lines.append(click.style("Loading Playlists", fg='cyan'))
        elif snapshot.load_error:
            lines.append(click.style("Couldn't Load Playlists", fg='yellow'))
        else:
            lines.append(click.style("No Playlists Found", fg='yellow'))
    else:
        tile_width = max(8, (width - 2 * (columns - 1)) // columns)
        numbered = list(enumerate(snapshot.playlists, start=1))
        for row in chunked(numbered, columns):
            tiles = []
            for index, playlist in row:
                label = f"{index:>2}. {playlist.name} ({playlist.total_items})"
                tiles.append(truncate_text(label, tile_width).ljust(tile_width))
            lines.append("  ".join(tiles).rstrip())
        lines.append("")
        lines.append(render_track(snapshot.track, width))

    if include_alert and snapshot.alert is not None:
        lines.append(render_alert(snapshot.alert))

    return "\n".join(lines)


class SorterScreen:
    """
    Interactive terminal session over a coordinator

    Args:
        coordinator: Coordinator whose state is displayed
        columns: Grid columns
        width: Terminal width, detected when omitted
        echo: Output function
    """

    def __init__(
        self,
        coordinator: PlaylistSyncCoordinator,
        columns: int = 3,
        width: Optional[int] = None,
        echo: Callable[[str], None] = click.echo
    ):
        self.coordinator = coordinator
        self.columns = columns
        self.width = width or shutil.get_terminal_size((80, 24)).columns
        self.echo = echo
        self._last_alert: Optional[AlertItem] = None

    def show(self) -> None:
        # Alerts are printed by the subscription when raised
        self.echo(render(self.coordinator.state.snapshot, self.columns, self.width, include_alert=False))

    def _on_snapshot(self, snapshot: SorterSnapshot) -> None:
        # Print each alert once, when it is raised
        if snapshot.alert is not None and snapshot.alert is not self._last_alert:
            self.echo(render_alert(snapshot.alert))
        self._last_alert = snapshot.alert

    async def _read_line(self) -> Optional[str]:
        """
        Read one command line without blocking the event loop

        The prompt runs in a daemon thread rather than the default executor,
        so an interrupted session exits without waiting for pending input.

        Returns:
            The line, or None when input ends or is aborted
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def resolve(line: Optional[str], error: Optional[BaseException]) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(line)

        def read() -> None:
            line, error = None, None
            try:
                line = click.prompt("sorter", default="", show_default=False, prompt_suffix="> ")
            except click.Abort:
                pass
            except Exception as e:
                error = e
            if not loop.is_closed():
                loop.call_soon_threadsafe(resolve, line, error)

        threading.Thread(target=read, name='sorter-input', daemon=True).start()
        return await future

    async def run(self) -> None:
        """Run the session until the user quits or input ends"""
        subscription = self.coordinator.state.subscribe(self._on_snapshot)
        try:
            self.coordinator.refresh()
            await self.coordinator.wait_idle()
            self.show()

            while True:
                line = await self._read_line()
                if line is None or not self.handle(line):
                    break
                await self.coordinator.wait_idle()
                self.show()
        finally:
            subscription.cancel()
            await self.coordinator.close()

    def handle(self, line: str) -> bool:
        """
        Dispatch one command line

        Args:
            line: Raw user input

        Returns:
            False when the session should end
        """
        command, _, argument = line.strip().partition(' ')
        command = command.lower()
        snapshot = self.coordinator.state.snapshot

        if not command:
            return True
        if command in ('q', 'quit', 'exit'):
            return False

        if command in ('h', 'help', '?'):
            self.echo(HELP_TEXT)
        elif command in ('r', 'refresh'):
            if snapshot.is_loading:
                self.echo("Playlists are still loading")
            else:
                self.coordinator.refresh()
        elif command in ('t', 'track'):
            self.coordinator.on_track_tapped()
        elif command in ('d', 'dismiss'):
            self.coordinator.dismiss_alert()
        elif command in ('n', 'new'):
            name = argument.strip()
            if not name:
                self.echo(click.style("Playlist name cannot be empty", fg='yellow'))
            else:
                self.coordinator.set_draft(name)
                self.coordinator.submit_new_playlist(name)
        elif command.isdigit():
            index = int(command)
            if not 1 <= index <= len(snapshot.playlists):
                self.echo(click.style(f"No playlist number {index}", fg='yellow'))
            else:
                self.coordinator.on_playlist_tapped(snapshot.playlists[index - 1])
        else:
            self.echo(f"Unknown command: {command} (h for help)")

        return True
