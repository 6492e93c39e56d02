"""Test configuration and fixtures"""

import asyncio
import logging
from typing import List, Optional

import pytest

from playlist_sorter.config.settings import Settings
from playlist_sorter.spotify.models import (
    Page,
    PlaybackContext,
    Playlist,
    PlaylistItemsReference,
    Track,
    User,
)
from playlist_sorter.utils.exceptions import SpotifyError


ME = User(id='me', uri='spotify:user:me', display_name='Me')
SOMEONE_ELSE = User(id='someone', uri='spotify:user:someone', display_name='Someone')


def make_playlist(
    playlist_id: str,
    owner: User = ME,
    collaborative: bool = False,
    total: int = 5,
    name: Optional[str] = None
) -> Playlist:
    return Playlist(
        id=playlist_id,
        uri=f'spotify:playlist:{playlist_id}',
        name=name or f'Playlist {playlist_id}',
        owner=owner,
        public=False,
        collaborative=collaborative,
        items=PlaylistItemsReference(href=f'https://api.spotify.com/v1/playlists/{playlist_id}/tracks', total=total),
        snapshot_id=f'snap-{playlist_id}'
    )


class FakeSpotifyClient:
    """In-memory stand-in for SpotifyClient with controllable timing and failures"""

    def __init__(self, user: User = ME, pages: Optional[List[Page]] = None, playback: Optional[PlaybackContext] = None):
        self.user = user
        self.pages = pages or []
        self.playback = playback

        self.user_error: Optional[SpotifyError] = None
        self.playback_error: Optional[SpotifyError] = None
        self.create_error: Optional[SpotifyError] = None
        self.add_error: Optional[SpotifyError] = None
        self.page_error_at: Optional[int] = None

        # Set to an asyncio.Event to hold the matching call until it is set
        self.user_gate: Optional[asyncio.Event] = None
        self.add_gate: Optional[asyncio.Event] = None

        self.created = []
        self.added = []
        self.page_requests = 0

    async def get_current_playback(self):
        await asyncio.sleep(0)
        if self.playback_error:
            raise self.playback_error
        return self.playback

    async def get_current_user_profile(self):
        if self.user_gate is not None:
            await self.user_gate.wait()
        await asyncio.sleep(0)
        if self.user_error:
            raise self.user_error
        return self.user

    async def iter_current_user_playlists(self):
        for index, page in enumerate(self.pages):
            await asyncio.sleep(0)
            self.page_requests += 1
            if index == self.page_error_at:
                raise SpotifyError("Service unavailable", http_status=503)
            yield page

    async def create_playlist(self, user_id, name, public=False, collaborative=False, description=""):
        await asyncio.sleep(0)
        self.created.append({
            'user_id': user_id,
            'name': name,
            'public': public,
            'collaborative': collaborative,
            'description': description,
        })
        if self.create_error:
            raise self.create_error
        playlist_id = f'new{len(self.created)}'
        return Playlist(
            id=playlist_id,
            uri=f'spotify:playlist:{playlist_id}',
            name=name,
            owner=User(id=user_id),
            public=public,
            collaborative=collaborative,
            items=PlaylistItemsReference(href=f'https://api.spotify.com/v1/playlists/{playlist_id}/tracks', total=0),
            snapshot_id='snap-created'
        )

    async def add_to_playlist(self, playlist_id, uris, position=None):
        self.added.append((playlist_id, list(uris)))
        if self.add_gate is not None:
            await self.add_gate.wait()
        await asyncio.sleep(0)
        if self.add_error:
            raise self.add_error
        return 'snap-added'


@pytest.fixture
def current_track():
    return Track(
        name='Come Together',
        id='track_123',
        uri='spotify:track:track_123',
        artists=('The Beatles',),
        album_name='Abbey Road',
        duration_ms=259000
    )


@pytest.fixture
def fake_client():
    return FakeSpotifyClient()


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings read from an isolated config file"""
    for var in ('SPOTIFY_CLIENT_ID', 'SPOTIFY_CLIENT_SECRET', 'SPOTIFY_REDIRECT_URL', 'PLAYLIST_SORTER_LOG_LEVEL'):
        monkeypatch.delenv(var, raising=False)

    config_file = tmp_path / 'config.yaml'
    config_file.write_text(
        "spotify:\n"
        "  client_id: test_client_id\n"
        "  client_secret: test_client_secret\n"
        "security:\n"
        f"  token_storage_path: {tmp_path / 'tokens' / 'cache.json'}\n"
        f"  config_directory: {tmp_path}\n",
        encoding='utf-8'
    )
    return Settings(str(config_file))


@pytest.fixture
def sample_playlist_data():
    """Simplified playlist object as returned by current_user_playlists"""
    return {
        'id': 'pl_123',
        'uri': 'spotify:playlist:pl_123',
        'name': 'Road Trip',
        'description': 'Songs for the car',
        'owner': {'id': 'me', 'uri': 'spotify:user:me', 'display_name': 'Me'},
        'public': False,
        'collaborative': False,
        'tracks': {'href': 'https://api.spotify.com/v1/playlists/pl_123/tracks', 'total': 12},
        'snapshot_id': 'MTAsZDVmZjMy',
        'href': 'https://api.spotify.com/v1/playlists/pl_123',
        'external_urls': {'spotify': 'https://open.spotify.com/playlist/pl_123'},
        'images': None
    }


@pytest.fixture
def sample_track_data():
    """Sample track data for testing"""
    return {
        'id': 'track_123',
        'uri': 'spotify:track:track_123',
        'type': 'track',
        'name': 'Come Together',
        'artists': [{'id': 'artist_123', 'name': 'The Beatles'}],
        'album': {'id': 'album_123', 'name': 'Abbey Road'},
        'duration_ms': 259000,
        'is_local': False
    }


@pytest.fixture
def restore_root_logging():
    """Put back the root logger handlers replaced by setup_logging"""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        if handler not in handlers:
            handler.close()
            root_logger.removeHandler(handler)
    for handler in handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(level)
