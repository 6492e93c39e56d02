"""
Asynchronous Spotify API client for the playlist sorter

spotipy is a blocking library. The sorter runs on a single asyncio event
loop, so every spotipy call is executed in a worker thread with
``asyncio.to_thread`` and awaited; the coroutine resumes on the event-loop
thread, which is the only place allowed to touch sorter state.

Layers:

1. **Throttling**: an ``asyncio_throttle.Throttler`` caps requests per second
   (``network.rate_limit``) across all concurrent callers.
2. **Error translation**: ``spotipy.SpotifyException``, OAuth failures of
   the auth manager (``SpotifyOauthError``) and ``requests`` transport
   errors become ``SpotifyError`` carrying the HTTP
   status and auth/rate-limit flags. Nothing is retried here; spotipy's own
   retries are set from ``network.max_retries`` (0 by default).
3. **Model conversion**: responses are turned into ``spotify.models`` objects.
4. **Pagination**: ``iter_current_user_playlists()`` follows the ``next``
   cursor of each page until the API reports no further page.

Usage:

    client = get_spotify_client()

    playback = await client.get_current_playback()
    async for page in client.iter_current_user_playlists():
        for playlist in page.items:
            print(playlist.name)
"""

import asyncio
import logging
from typing import Any, AsyncIterator, List, Optional

import requests
import spotipy
from asyncio_throttle import Throttler
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from ..config.settings import Settings, get_settings
from ..utils.exceptions import SpotifyError
from ..utils.logger import get_logger
from .models import PlaybackContext, Page, Playlist, User

# Only show ERROR level messages from spotipy and requests
logging.getLogger('spotipy.client').setLevel(logging.ERROR)
logging.getLogger('requests.packages.urllib3').setLevel(logging.ERROR)


def create_spotify_api(settings: Settings) -> spotipy.Spotify:
    """
    Build an authenticated spotipy client from settings

    The OAuth flow and token refresh are handled by SpotifyOAuth; tokens are
    cached at the configured token storage path.

    Args:
        settings: Application settings with Spotify credentials

    Returns:
        spotipy.Spotify instance

    Raises:
        SpotifyError: If credentials are missing
    """
    if not settings.spotify.client_id or not settings.spotify.client_secret:
        raise SpotifyError(
            "Spotify credentials missing. Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET "
            "or add them to config.yaml",
            is_auth_error=True
        )

    auth_manager = SpotifyOAuth(
        client_id=settings.spotify.client_id,
        client_secret=settings.spotify.client_secret,
        redirect_uri=settings.spotify.redirect_url,
        scope=settings.spotify.scope,
        cache_path=str(settings.get_token_storage_path()),
        open_browser=True
    )

    return spotipy.Spotify(
        auth_manager=auth_manager,
        requests_timeout=settings.network.request_timeout,
        retries=settings.network.max_retries,
        status_retries=settings.network.max_retries
    )


class SpotifyClient:
    """
    Spotify Web API client exposing the operations the sorter needs

    The underlying spotipy connection is created lazily on first use, so
    constructing the client never triggers the OAuth flow. A ready-made
    spotipy instance (or a test double) can be injected instead.

    Operations:
    - get_current_playback(): what is playing right now
    - get_current_user_profile(): the signed-in user
    - get_current_user_playlists(cursor): one page of the user's playlists
    - iter_current_user_playlists(): every page, following cursors
    - create_playlist(): create a playlist for a user
    - add_to_playlist(): add items, returning the new snapshot id
    """

    def __init__(self, api: Optional[spotipy.Spotify] = None, settings: Optional[Settings] = None):
        """
        Args:
            api: Preconfigured spotipy client, created from settings when omitted
            settings: Application settings, defaults to the global instance
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self._api = api
        self._throttler = Throttler(rate_limit=self.settings.network.rate_limit, period=1.0)

    @property
    def api(self) -> spotipy.Spotify:
        """Lazily created spotipy client"""
        if self._api is None:
            self._api = create_spotify_api(self.settings)
        return self._api

    async def _make_request(self, endpoint: str, *args, **kwargs) -> Any:
        """
        Throttled spotipy call executed off the event-loop thread

        Args:
            endpoint: Name of the spotipy.Spotify method to call
            *args: Positional arguments for the method
            **kwargs: Keyword arguments for the method

        Returns:
            Raw API response

        Raises:
            SpotifyError: For API errors and network failures
        """
        func = getattr(self.api, endpoint)

        async with self._throttler:
            try:
                return await asyncio.to_thread(func, *args, **kwargs)
            except SpotifyException as e:
                status = e.http_status
                self.logger.debug(f"Spotify API error on {endpoint}: {status} {e.msg}")
                raise SpotifyError(
                    _describe_api_error(e),
                    details={'endpoint': endpoint, 'reason': getattr(e, 'reason', None)},
                    http_status=status,
                    is_auth_error=status == 401,
                    is_rate_limit=status == 429
                ) from e
            except SpotifyOauthError as e:
                # Raised by the auth manager when the token cannot be obtained or refreshed
                reason = e.error_description or e.error or str(e)
                self.logger.debug(f"Spotify authorization failed on {endpoint}: {reason}")
                raise SpotifyError(
                    f"Spotify authorization failed: {reason}. Please log in again.",
                    details={'endpoint': endpoint, 'error': e.error},
                    is_auth_error=True
                ) from e
            except requests.exceptions.RequestException as e:
                self.logger.debug(f"Network error on {endpoint}: {e}")
                raise SpotifyError(
                    f"Could not reach Spotify: {e}",
                    details={'endpoint': endpoint, 'original_error': str(e)}
                ) from e

    async def get_current_playback(self) -> Optional[PlaybackContext]:
        """
        Current playback state

        Returns:
            PlaybackContext, or None when nothing is playing on any device
        """
        data = await self._make_request('current_playback', additional_types='track,episode')
        if not data:
            return None
        return PlaybackContext.from_spotify_data(data)

    async def get_current_user_profile(self) -> User:
        """Profile of the signed-in user"""
        data = await self._make_request('current_user')
        return User.from_spotify_data(data)

    async def get_current_user_playlists(self, cursor: Optional[str] = None) -> Page[Playlist]:
        """
        One page of the signed-in user's playlists

        Args:
            cursor: next_cursor of the previous page, None for the first page

        Returns:
            Page of playlists in server order
        """
        if cursor is None:
            data = await self._make_request(
                'current_user_playlists',
                limit=self.settings.sorter.page_size,
                offset=0
            )
        else:
            data = await self._make_request('next', {'next': cursor})

        if not data:
            return Page(items=[])
        return Page.from_spotify_data(data, Playlist.from_spotify_data)

    async def iter_current_user_playlists(self) -> AsyncIterator[Page[Playlist]]:
        """
        Every page of the signed-in user's playlists

        Requests the next page only after the previous one has been consumed
        and stops once a page has no next cursor. A failing page request
        raises after the earlier pages have been yielded.

        Yields:
            Pages of playlists in server order
        """
        cursor: Optional[str] = None
        fetched = 0
        while True:
            page = await self.get_current_user_playlists(cursor)
            fetched += len(page.items)
            self.logger.debug(f"Fetched playlist page at offset {page.offset} ({fetched}/{page.total})")
            yield page
            if page.is_last:
                break
            cursor = page.next_cursor

    async def create_playlist(
        self,
        user_id: str,
        name: str,
        public: bool = False,
        collaborative: bool = False,
        description: str = ""
    ) -> Playlist:
        """
        Create a playlist owned by a user

        Args:
            user_id: Owner's Spotify user id
            name: Playlist name
            public: Whether the playlist is public
            collaborative: Whether others may edit it
            description: Playlist description

        Returns:
            The created playlist as reported by the API
        """
        data = await self._make_request(
            'user_playlist_create',
            user_id,
            name,
            public=public,
            collaborative=collaborative,
            description=description
        )
        playlist = Playlist.from_spotify_data(data)
        self.logger.info(f"Created playlist '{playlist.name}' ({playlist.id})")
        return playlist

    async def add_to_playlist(self, playlist_id: str, uris: List[str], position: Optional[int] = None) -> str:
        """
        Add items to a playlist

        Args:
            playlist_id: Playlist id, URI or URL
            uris: Track or episode URIs to add
            position: Insert position, appends when None

        Returns:
            The playlist's new snapshot id
        """
        data = await self._make_request('playlist_add_items', playlist_id, uris, position=position)
        return (data or {}).get('snapshot_id', '')


def _describe_api_error(error: SpotifyException) -> str:
    """Human-readable message for a spotipy error"""
    status = error.http_status
    if status == 401:
        return "Spotify session expired or is not authorized. Please log in again."
    if status == 403:
        return "Spotify refused the request: missing permission for this account."
    if status == 404:
        return "The requested Spotify resource was not found."
    if status == 429:
        return "Too many requests to Spotify. Please wait a moment and try again."
    # spotipy prefixes the message with the request URL and a newline
    message = str(error.msg).rsplit('\n', 1)[-1].strip() if error.msg else ""
    return f"Spotify request failed ({status}): {message}" if message else f"Spotify request failed ({status})"


# Global client instance for singleton pattern implementation
_client_instance: Optional[SpotifyClient] = None


def get_spotify_client() -> SpotifyClient:
    """
    Factory function to retrieve the global Spotify client instance

    Returns:
        Global SpotifyClient instance
    """
    global _client_instance
    if not _client_instance:
        _client_instance = SpotifyClient()
    return _client_instance


def reset_spotify_client() -> None:
    """Forget the global client; the next get_spotify_client() builds a new one"""
    global _client_instance
    _client_instance = None
