"""
Configuration package for Playlist-Sorter

Settings are read from YAML files and environment variables and accessed
through a process-wide instance:

    from playlist_sorter.config import get_settings

    settings = get_settings()
    print(settings.sorter.columns)

Authentication is not handled here: spotipy's SpotifyOAuth manager takes
care of the OAuth flow and token refresh, using the credentials and token
cache path configured in these settings.
"""

from .settings import (
    get_settings,
    reload_settings,
    Settings,
    SpotifyConfig,
    NetworkConfig,
    SorterConfig,
    LoggingConfig,
    SecurityConfig,
)

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'SpotifyConfig',
    'NetworkConfig',
    'SorterConfig',
    'LoggingConfig',
    'SecurityConfig',
]
