"""
Playlist-Sorter - file the song you're listening to into your Spotify playlists

The sorter shows the playlists you own or collaborate on, keeps track of the
currently playing song, and lets you add that song to a playlist or create a
new playlist seeded with it.

Package Structure:
- config: Settings from YAML files and environment variables
- spotify: Asynchronous Spotify Web API client and data models
- sync: Playlist sync coordinator and the observable sorter state
- screen: Terminal rendering and the interactive session
- utils: Logging, exceptions and formatting helpers
- main: Click command line interface

Python API:

    import asyncio
    from playlist_sorter import PlaylistSyncCoordinator, get_spotify_client

    async def show_playlists():
        coordinator = PlaylistSyncCoordinator(get_spotify_client())
        coordinator.refresh()
        await coordinator.wait_idle()
        for playlist in coordinator.state.snapshot.playlists:
            print(playlist.name)

    asyncio.run(show_playlists())
"""

__version__ = "0.1.0"
__author__ = "Playlist-Sorter Team"
__license__ = "MIT"

from .config.settings import Settings, get_settings, reload_settings
from .spotify.client import SpotifyClient, get_spotify_client, reset_spotify_client
from .spotify.models import Playlist, PlaybackContext, Track, User
from .sync.coordinator import PlaylistSyncCoordinator
from .sync.state import AlertItem, SorterSnapshot, SorterState
from .utils.exceptions import ConfigError, PlaylistSorterError, SpotifyError, StateAccessError

__all__ = [
    '__version__',
    # Config
    'Settings',
    'get_settings',
    'reload_settings',
    # Spotify
    'SpotifyClient',
    'get_spotify_client',
    'reset_spotify_client',
    'Playlist',
    'PlaybackContext',
    'Track',
    'User',
    # Sync
    'PlaylistSyncCoordinator',
    'AlertItem',
    'SorterSnapshot',
    'SorterState',
    # Exceptions
    'PlaylistSorterError',
    'ConfigError',
    'SpotifyError',
    'StateAccessError',
]
