"""
Playlist synchronization for the sorter screen

``PlaylistSyncCoordinator`` is the only component that talks to Spotify on
behalf of the screen. Front-end triggers (appear, refresh button, tap on the
track, tap on a playlist tile, submitting a new name) call its commands,
which schedule asyncio tasks; each task awaits one or more API calls and
publishes the results to ``SorterState`` on the event-loop thread.

Error policy:
- Playlist load failures set ``load_error`` and raise an alert.
- Currently-playing, create and add failures are only logged.
- Any other exception fails its task and is logged at ERROR; a playlist
  load still ends with ``load_error`` and the alert.
Nothing is retried; the user refreshes again.

Concurrency:
In-flight work is tracked as tasks and cancelled on ``close()``. A new
refresh does not cancel a previous one unless ``cancel_stale_refreshes``
is enabled, so overlapping refreshes may interleave their results.
"""

import asyncio
from typing import Awaitable, Optional, Set

from ..spotify.client import SpotifyClient
from ..spotify.models import Playlist, User
from ..utils.exceptions import SpotifyError
from ..utils.logger import get_logger
from .state import AlertItem, SorterState

LOAD_FAILED_TITLE = "Couldn't Retrieve Playlists"


class PlaylistSyncCoordinator:
    """
    Keeps the sorter state in sync with the user's Spotify account

    Commands (schedule work, return immediately):
        refresh(), on_track_tapped(), submit_new_playlist(name),
        on_playlist_tapped(playlist)

    Operations (awaitable):
        load_currently_playing(), load_playlists(), create_playlist(name),
        add_current_track(playlist)
    """

    def __init__(
        self,
        client: SpotifyClient,
        state: Optional[SorterState] = None,
        cancel_stale_refreshes: bool = False
    ):
        """
        Args:
            client: Spotify API client
            state: State to publish to, a new one is created when omitted
            cancel_stale_refreshes: Cancel the previous refresh's tasks when
                a new refresh starts
        """
        self.client = client
        self.state = state or SorterState()
        self.cancel_stale_refreshes = cancel_stale_refreshes
        self.logger = get_logger(__name__)
        self._tasks: Set[asyncio.Task] = set()
        self._refresh_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Task tracking
    # ------------------------------------------------------------------

    def _spawn(self, coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self._refresh_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        if isinstance(error, SpotifyError):
            # Already handled and logged by the operation that raised it
            self.logger.debug(f"Task {task.get_name()} finished with error: {error}")
        else:
            self.logger.error(
                f"Task {task.get_name()} failed: {error!r}",
                exc_info=(type(error), error, error.__traceback__)
            )

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every scheduled task, including ones they schedule, has finished"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel all in-flight work"""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._refresh_tasks.clear()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Reload the currently playing track and the playlist collection"""
        if self.cancel_stale_refreshes:
            for task in list(self._refresh_tasks):
                if not task.done():
                    self.logger.debug(f"Cancelling stale refresh task {task.get_name()}")
                    task.cancel()

        for task in (
            self._spawn(self.load_currently_playing(), name='load-currently-playing'),
            self._spawn(self.load_playlists(), name='load-playlists'),
        ):
            self._refresh_tasks.add(task)

    def on_track_tapped(self) -> None:
        self._spawn(self.load_currently_playing(), name='load-currently-playing')

    def submit_new_playlist(self, name: str) -> None:
        """
        Create a playlist named from the input field

        Callers must not submit an empty name.
        """
        self._spawn(self.create_playlist(name), name='create-playlist')

    def on_playlist_tapped(self, playlist: Playlist) -> None:
        self._spawn(self.add_current_track(playlist), name='add-current-track')

    def set_draft(self, name: str, focused: bool = True) -> None:
        self.state.update(draft_name=name, draft_focused=focused)

    def dismiss_alert(self) -> None:
        self.state.update(alert=None)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def load_currently_playing(self) -> None:
        """
        Replace the current track with what is playing now

        Leaves the track unchanged when nothing plays, when the item is not
        a track (episode, ad) or when the request fails.
        """
        try:
            playback = await self.client.get_current_playback()
        except SpotifyError as e:
            self.logger.warning(f"Could not load currently playing track: {e}")
            return

        if playback is None:
            self.logger.debug("Nothing is playing")
            return

        track = playback.track
        if track is None:
            self.logger.debug(f"Currently playing a {playback.currently_playing_type}, keeping the current track")
            return

        self.state.update(track=track)
        self.logger.debug(f"Current track: {track.name}")

    async def load_playlists(self) -> None:
        """
        Rebuild the playlist collection from every page of the user's playlists

        The collection is cleared first. The user profile and the pages are
        requested concurrently; each page waits for the profile before its
        playlists are filtered, so no page is lost to arrival order. Pages
        appended before a failure stay visible.
        """
        self.state.update(is_loading=True, playlists=())
        user_task = self._spawn(self._load_current_user(), name='load-current-user')

        try:
            count = 0
            async for page in self.client.iter_current_user_playlists():
                user = await user_task
                eligible = [playlist for playlist in page.items if playlist.is_editable_by(user)]
                self.state.append_playlists(eligible)
                count += len(eligible)
            await user_task
        except SpotifyError as e:
            self.logger.error(f"Failed to load playlists: {e}")
            self.state.update(
                is_loading=False,
                load_error=True,
                alert=AlertItem(title=LOAD_FAILED_TITLE, message=e.message)
            )
            return
        except Exception as e:
            # Leave a terminal state so the user can refresh again, then let the task fail
            self.state.update(
                is_loading=False,
                load_error=True,
                alert=AlertItem(title=LOAD_FAILED_TITLE, message=f"Unexpected error: {e}")
            )
            raise

        self.state.update(is_loading=False, load_error=False)
        self.logger.info(f"Loaded {count} playlists")

    async def _load_current_user(self) -> User:
        user = await self.client.get_current_user_profile()
        self.state.update(current_user=user)
        return user

    async def create_playlist(self, name: str) -> Optional[Playlist]:
        """
        Create a private playlist and show it first in the collection

        When the current track has a URI it is added to the new playlist in
        the background; the playlist is shown without waiting for that.
        The name input is cleared and unfocused whatever the outcome.

        Args:
            name: Non-empty playlist name

        Returns:
            The projection shown in the collection, or None if nothing was created
        """
        self.state.update(draft_name="", draft_focused=False)

        user = self.state.snapshot.current_user
        if user is None:
            self.logger.warning(f"Cannot create playlist '{name}': current user is unknown")
            return None

        try:
            created = await self.client.create_playlist(
                user.id, name, public=False, collaborative=False, description=""
            )
        except SpotifyError as e:
            self.logger.error(f"Creating playlist '{name}' failed: {e}")
            return None

        # The add below cannot finish before this point, so the projection
        # carries the post-creation snapshot id
        projection = created.as_reference(created.snapshot_id)
        self.state.prepend_playlist(projection)

        track = self.state.snapshot.track
        if track is not None and track.uri:
            self._spawn(self._add_track_to_new_playlist(projection, track.uri, track.name),
                        name='add-to-new-playlist')
        else:
            self.logger.info(f"Current track {track.name if track else None!r} has no uri, playlist left empty")

        return projection

    async def _add_track_to_new_playlist(self, playlist: Playlist, uri: str, track_name: str) -> Optional[str]:
        try:
            snapshot_id = await self.client.add_to_playlist(playlist.uri, [uri])
        except SpotifyError as e:
            self.logger.error(f"Adding to playlist '{playlist.name}' failed: {e}")
            return None
        self.logger.info(f"Added '{track_name}' to '{playlist.name}'")
        self._record_added(playlist, snapshot_id)
        return snapshot_id

    def _record_added(self, playlist: Playlist, snapshot_id: Optional[str]) -> Playlist:
        """Bump the item count and snapshot id of the playlist's entry in the collection"""
        current = next((p for p in self.state.snapshot.playlists if p.uri == playlist.uri), playlist)
        updated = current.with_added_items(1, snapshot_id)
        self.state.replace_playlist(updated)
        return updated

    async def add_current_track(self, playlist: Playlist) -> Optional[Playlist]:
        """
        Add the current track to a playlist from the collection

        Args:
            playlist: Tapped playlist

        Returns:
            The updated playlist, or None if nothing was added
        """
        track = self.state.snapshot.track
        if track is None or not track.uri:
            self.logger.warning(f"No track with a uri to add to '{playlist.name}'")
            return None

        try:
            snapshot_id = await self.client.add_to_playlist(playlist.uri, [track.uri])
        except SpotifyError as e:
            self.logger.error(f"Adding '{track.name}' to '{playlist.name}' failed: {e}")
            return None

        updated = self._record_added(playlist, snapshot_id)
        self.logger.console_info(f"Added '{track.name}' to '{playlist.name}'")
        return updated
