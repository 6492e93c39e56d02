"""
Spotify integration package - Web API access and data models for the playlist sorter

Components:

1. Client Module (client.py):
   - SpotifyClient: asyncio facade over spotipy with throttling and error translation
   - create_spotify_api(): builds the OAuth-authenticated spotipy instance
   - get_spotify_client() / reset_spotify_client(): process-wide instance

2. Models Module (models.py):
   - Track, Episode, User, Playlist, PlaylistItemsReference: API entities
   - Page: one page of a paginated response with its next cursor
   - PlaybackContext: what is currently playing

Usage Example:

    from playlist_sorter.spotify import get_spotify_client

    client = get_spotify_client()
    user = await client.get_current_user_profile()
"""

from .client import get_spotify_client, reset_spotify_client, create_spotify_api, SpotifyClient

from .models import (
    Track,
    Episode,
    User,
    Playlist,
    PlaylistItemsReference,
    Page,
    PlaybackContext
)

__all__ = [
    # Client components
    'get_spotify_client',
    'reset_spotify_client',
    'create_spotify_api',
    'SpotifyClient',

    # Data models
    'Track',
    'Episode',
    'User',
    'Playlist',
    'PlaylistItemsReference',
    'Page',
    'PlaybackContext'
]
