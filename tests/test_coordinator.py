"""Test the playlist sync coordinator"""

import asyncio
import logging
from unittest.mock import Mock

import pytest
from spotipy.oauth2 import SpotifyOauthError

from playlist_sorter.spotify.client import SpotifyClient
from playlist_sorter.spotify.models import Episode, Page, PlaybackContext, Track
from playlist_sorter.sync.coordinator import LOAD_FAILED_TITLE, PlaylistSyncCoordinator
from playlist_sorter.sync.state import AlertItem, SorterSnapshot, SorterState
from playlist_sorter.utils.exceptions import SpotifyError

from conftest import ME, SOMEONE_ELSE, FakeSpotifyClient, make_playlist


async def settle(ticks: int = 10):
    """Let scheduled tasks run a few steps"""
    for _ in range(ticks):
        await asyncio.sleep(0)


def track_playback(track):
    return PlaybackContext(is_playing=True, currently_playing_type='track', item=track)


@pytest.fixture
def coordinator(fake_client):
    return PlaylistSyncCoordinator(fake_client)


class TestLoadPlaylists:
    """Test loading the playlist collection"""

    @pytest.mark.asyncio
    async def test_only_owned_or_collaborative_playlists(self, fake_client, coordinator):
        fake_client.pages = [Page(items=[
            make_playlist('mine'),
            make_playlist('theirs', owner=SOMEONE_ELSE),
            make_playlist('shared', owner=SOMEONE_ELSE, collaborative=True),
        ])]

        await coordinator.load_playlists()

        snapshot = coordinator.state.snapshot
        assert [p.id for p in snapshot.playlists] == ['mine', 'shared']
        assert all(p.collaborative or p.owner.id == ME.id for p in snapshot.playlists)
        assert snapshot.current_user == ME
        assert not snapshot.is_loading
        assert not snapshot.load_error

    @pytest.mark.asyncio
    async def test_all_pages_in_server_order(self, fake_client, coordinator):
        """Test pages of 2, 1 and 0 playlists end with exactly 3 entries"""
        fake_client.pages = [
            Page(items=[make_playlist('p1a'), make_playlist('p1b')], next_cursor='cursor-2', total=3),
            Page(items=[make_playlist('p2a')], next_cursor='cursor-3', total=3, offset=2),
            Page(items=[], total=3, offset=3),
        ]

        await coordinator.load_playlists()

        assert [p.id for p in coordinator.state.snapshot.playlists] == ['p1a', 'p1b', 'p2a']
        assert fake_client.page_requests == 3

    @pytest.mark.asyncio
    async def test_collection_cleared_before_appending(self, fake_client):
        state = SorterState(SorterSnapshot(playlists=(make_playlist('old1'), make_playlist('old2'))))
        coordinator = PlaylistSyncCoordinator(fake_client, state=state)
        fake_client.pages = [Page(items=[make_playlist('new')])]
        received = []
        state.subscribe(received.append)

        await coordinator.load_playlists()

        loading = received[1]
        assert loading.is_loading
        assert loading.playlists == ()
        assert not any(
            {'old1', 'new'} <= {p.id for p in snapshot.playlists} for snapshot in received
        )
        assert [p.id for p in state.snapshot.playlists] == ['new']

    @pytest.mark.asyncio
    async def test_pages_wait_for_user_profile(self, fake_client, coordinator):
        """Test pages that arrive before the user profile are not dropped"""
        fake_client.user_gate = asyncio.Event()
        fake_client.pages = [
            Page(items=[make_playlist('a'), make_playlist('b')], next_cursor='cursor-2'),
            Page(items=[make_playlist('c')]),
        ]

        task = asyncio.ensure_future(coordinator.load_playlists())
        await settle()

        assert coordinator.state.snapshot.is_loading
        assert coordinator.state.snapshot.playlists == ()

        fake_client.user_gate.set()
        await task

        assert [p.id for p in coordinator.state.snapshot.playlists] == ['a', 'b', 'c']

    @pytest.mark.asyncio
    async def test_failure_raises_alert(self, fake_client, coordinator):
        fake_client.pages = [Page(items=[make_playlist('a')])]
        fake_client.page_error_at = 0

        await coordinator.load_playlists()

        snapshot = coordinator.state.snapshot
        assert snapshot.load_error
        assert not snapshot.is_loading
        assert snapshot.alert == AlertItem(title=LOAD_FAILED_TITLE, message='Service unavailable')
        assert snapshot.playlists == ()

    @pytest.mark.asyncio
    async def test_failure_keeps_earlier_pages(self, fake_client, coordinator):
        fake_client.pages = [
            Page(items=[make_playlist('a'), make_playlist('b')], next_cursor='cursor-2'),
            Page(items=[make_playlist('c')]),
        ]
        fake_client.page_error_at = 1

        await coordinator.load_playlists()

        snapshot = coordinator.state.snapshot
        assert snapshot.load_error
        assert [p.id for p in snapshot.playlists] == ['a', 'b']

    @pytest.mark.asyncio
    async def test_user_profile_failure_fails_the_load(self, fake_client, coordinator):
        fake_client.pages = [Page(items=[make_playlist('a')])]
        fake_client.user_error = SpotifyError("Unauthorized", http_status=401, is_auth_error=True)

        await coordinator.load_playlists()

        snapshot = coordinator.state.snapshot
        assert snapshot.load_error
        assert snapshot.alert.message == 'Unauthorized'
        assert snapshot.playlists == ()

    @pytest.mark.asyncio
    async def test_successful_reload_resets_load_error(self, fake_client, coordinator):
        fake_client.pages = [Page(items=[make_playlist('a')])]
        fake_client.page_error_at = 0
        await coordinator.load_playlists()
        assert coordinator.state.snapshot.load_error

        fake_client.page_error_at = None
        await coordinator.load_playlists()

        assert not coordinator.state.snapshot.load_error
        assert [p.id for p in coordinator.state.snapshot.playlists] == ['a']

    @pytest.mark.asyncio
    async def test_empty_account(self, fake_client, coordinator):
        fake_client.pages = [Page(items=[])]

        await coordinator.load_playlists()
        await coordinator.wait_idle()

        snapshot = coordinator.state.snapshot
        assert snapshot.playlists == ()
        assert not snapshot.load_error
        assert not snapshot.is_loading


class TestCurrentlyPlaying:
    """Test loading the currently playing track"""

    @pytest.mark.asyncio
    async def test_track_replaces_current(self, fake_client, coordinator, current_track):
        fake_client.playback = track_playback(current_track)

        await coordinator.load_currently_playing()

        assert coordinator.state.snapshot.track == current_track

    @pytest.mark.asyncio
    @pytest.mark.parametrize('playback', [
        None,
        PlaybackContext(is_playing=True, currently_playing_type='episode', item=Episode(name='Episode 1')),
        PlaybackContext(is_playing=True, currently_playing_type='ad', item=None),
    ])
    async def test_non_track_keeps_current(self, fake_client, current_track, playback):
        state = SorterState(SorterSnapshot(track=current_track))
        coordinator = PlaylistSyncCoordinator(fake_client, state=state)
        fake_client.playback = playback

        await coordinator.load_currently_playing()

        assert state.snapshot.track == current_track

    @pytest.mark.asyncio
    async def test_failure_is_not_alerted(self, fake_client, coordinator):
        fake_client.playback_error = SpotifyError("Service unavailable", http_status=503)

        await coordinator.load_currently_playing()

        assert coordinator.state.snapshot.track is None
        assert coordinator.state.snapshot.alert is None
        assert not coordinator.state.snapshot.load_error


class TestCreatePlaylist:
    """Test creating a playlist seeded with the current track"""

    @pytest.fixture
    def ready(self, fake_client, current_track):
        fake_client.playback = track_playback(current_track)
        fake_client.pages = [Page(items=[make_playlist('a'), make_playlist('b')])]
        state = SorterState(SorterSnapshot(draft_name='Road Trip', draft_focused=True))
        return PlaylistSyncCoordinator(fake_client, state=state)

    @pytest.mark.asyncio
    async def test_new_playlist_shown_first_before_add_finishes(self, fake_client, ready):
        ready.refresh()
        await ready.wait_idle()
        fake_client.add_gate = asyncio.Event()

        created = await ready.create_playlist('Road Trip')
        await settle()

        snapshot = ready.state.snapshot
        assert snapshot.playlists[0].name == 'Road Trip'
        assert snapshot.playlists[0].uri == created.uri
        assert snapshot.playlists[0].total_items == 0
        assert [p.id for p in snapshot.playlists[1:]] == ['a', 'b']
        assert fake_client.added == [(created.uri, ['spotify:track:track_123'])]
        assert ready.pending_tasks == 1

        fake_client.add_gate.set()
        await ready.wait_idle()

        entry = ready.state.snapshot.playlists[0]
        assert entry.total_items == 1
        assert entry.snapshot_id == 'snap-added'

    @pytest.mark.asyncio
    async def test_created_private_and_not_collaborative(self, fake_client, ready):
        ready.refresh()
        await ready.wait_idle()

        await ready.create_playlist('Road Trip')

        assert fake_client.created == [{
            'user_id': 'me',
            'name': 'Road Trip',
            'public': False,
            'collaborative': False,
            'description': '',
        }]

    @pytest.mark.asyncio
    async def test_draft_cleared_on_success(self, ready):
        ready.refresh()
        await ready.wait_idle()

        await ready.create_playlist('Road Trip')

        assert ready.state.snapshot.draft_name == ''
        assert not ready.state.snapshot.draft_focused

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_alerted(self, fake_client, ready):
        ready.refresh()
        await ready.wait_idle()
        before = ready.state.snapshot.playlists
        fake_client.create_error = SpotifyError("Forbidden", http_status=403)

        created = await ready.create_playlist('Road Trip')

        snapshot = ready.state.snapshot
        assert created is None
        assert snapshot.playlists == before
        assert snapshot.alert is None
        assert snapshot.draft_name == ''
        assert fake_client.added == []

    @pytest.mark.asyncio
    async def test_unknown_user_creates_nothing(self, fake_client, ready):
        created = await ready.create_playlist('Road Trip')

        assert created is None
        assert fake_client.created == []
        assert ready.state.snapshot.draft_name == ''

    @pytest.mark.asyncio
    async def test_without_track_playlist_stays_empty(self, fake_client):
        fake_client.pages = [Page(items=[])]
        coordinator = PlaylistSyncCoordinator(fake_client)
        coordinator.refresh()
        await coordinator.wait_idle()

        created = await coordinator.create_playlist('Empty')
        await coordinator.wait_idle()

        assert created is not None
        assert fake_client.added == []
        assert coordinator.state.snapshot.playlists[0].total_items == 0

    @pytest.mark.asyncio
    async def test_add_failure_leaves_playlist_visible(self, fake_client, ready):
        ready.refresh()
        await ready.wait_idle()
        fake_client.add_error = SpotifyError("Service unavailable", http_status=503)

        created = await ready.create_playlist('Road Trip')
        await ready.wait_idle()

        snapshot = ready.state.snapshot
        assert snapshot.playlists[0].uri == created.uri
        assert snapshot.playlists[0].total_items == 0
        assert snapshot.alert is None

    @pytest.mark.asyncio
    async def test_submit_new_playlist_schedules_creation(self, fake_client, ready):
        ready.refresh()
        await ready.wait_idle()

        ready.submit_new_playlist('Road Trip')
        await ready.wait_idle()

        assert ready.state.snapshot.playlists[0].name == 'Road Trip'
        assert ready.state.snapshot.playlists[0].total_items == 1


class TestAddCurrentTrack:
    """Test adding the current track to an existing playlist"""

    @pytest.mark.asyncio
    async def test_tap_adds_track(self, fake_client, current_track):
        playlist = make_playlist('a', total=5)
        state = SorterState(SorterSnapshot(track=current_track, playlists=(playlist,)))
        coordinator = PlaylistSyncCoordinator(fake_client, state=state)

        coordinator.on_playlist_tapped(playlist)
        await coordinator.wait_idle()

        assert fake_client.added == [(playlist.uri, [current_track.uri])]
        assert state.snapshot.playlists[0].total_items == 6
        assert state.snapshot.playlists[0].snapshot_id == 'snap-added'

    @pytest.mark.asyncio
    async def test_no_track_adds_nothing(self, fake_client):
        playlist = make_playlist('a')
        coordinator = PlaylistSyncCoordinator(fake_client, state=SorterState(SorterSnapshot(playlists=(playlist,))))

        assert await coordinator.add_current_track(playlist) is None
        assert fake_client.added == []

    @pytest.mark.asyncio
    async def test_track_without_uri_adds_nothing(self, fake_client):
        playlist = make_playlist('a')
        state = SorterState(SorterSnapshot(track=Track(name='Local song'), playlists=(playlist,)))
        coordinator = PlaylistSyncCoordinator(fake_client, state=state)

        assert await coordinator.add_current_track(playlist) is None
        assert fake_client.added == []

    @pytest.mark.asyncio
    async def test_failure_leaves_count(self, fake_client, current_track):
        playlist = make_playlist('a', total=5)
        state = SorterState(SorterSnapshot(track=current_track, playlists=(playlist,)))
        coordinator = PlaylistSyncCoordinator(fake_client, state=state)
        fake_client.add_error = SpotifyError("Forbidden", http_status=403)

        assert await coordinator.add_current_track(playlist) is None
        assert state.snapshot.playlists[0].total_items == 5
        assert state.snapshot.alert is None


class TestRefreshAndLifecycle:
    """Test triggers, overlapping refreshes and shutdown"""

    @pytest.mark.asyncio
    async def test_refresh_loads_track_and_playlists(self, fake_client, coordinator, current_track):
        fake_client.playback = track_playback(current_track)
        fake_client.pages = [Page(items=[make_playlist('a')])]

        coordinator.refresh()
        await coordinator.wait_idle()

        snapshot = coordinator.state.snapshot
        assert snapshot.track == current_track
        assert [p.id for p in snapshot.playlists] == ['a']
        assert coordinator.pending_tasks == 0

    @pytest.mark.asyncio
    async def test_track_tap_reloads_track(self, fake_client, coordinator, current_track):
        fake_client.playback = track_playback(current_track)

        coordinator.on_track_tapped()
        await coordinator.wait_idle()

        assert coordinator.state.snapshot.track == current_track

    @pytest.mark.asyncio
    async def test_overlapping_refreshes_both_run_by_default(self, fake_client, coordinator):
        fake_client.user_gate = asyncio.Event()
        fake_client.pages = [Page(items=[make_playlist('a')])]

        coordinator.refresh()
        await settle()
        first = set(coordinator._refresh_tasks)
        coordinator.refresh()
        await settle()

        assert not any(task.cancelled() for task in first)

        fake_client.user_gate.set()
        await coordinator.wait_idle()
        assert not coordinator.state.snapshot.is_loading

    @pytest.mark.asyncio
    async def test_stale_refresh_cancelled_when_enabled(self, fake_client):
        coordinator = PlaylistSyncCoordinator(fake_client, cancel_stale_refreshes=True)
        fake_client.user_gate = asyncio.Event()
        fake_client.pages = [Page(items=[make_playlist('a')])]

        coordinator.refresh()
        await settle()
        first = {task for task in coordinator._refresh_tasks if task.get_name() == 'load-playlists'}
        coordinator.refresh()
        await settle()

        assert first and all(task.cancelled() for task in first)

        fake_client.user_gate.set()
        await coordinator.wait_idle()
        assert [p.id for p in coordinator.state.snapshot.playlists] == ['a']
        assert not coordinator.state.snapshot.is_loading

    @pytest.mark.asyncio
    async def test_close_cancels_in_flight_work(self, fake_client, coordinator):
        fake_client.user_gate = asyncio.Event()
        fake_client.pages = [Page(items=[make_playlist('a')])]

        coordinator.refresh()
        await settle()
        assert coordinator.pending_tasks > 0

        await coordinator.close()

        assert coordinator.pending_tasks == 0
        assert coordinator.state.snapshot.playlists == ()

    @pytest.mark.asyncio
    async def test_draft_and_alert_commands(self, coordinator):
        coordinator.set_draft('Road')
        assert coordinator.state.snapshot.draft_name == 'Road'
        assert coordinator.state.snapshot.draft_focused

        coordinator.state.update(alert=AlertItem(title='t', message='m'))
        coordinator.dismiss_alert()
        assert coordinator.state.snapshot.alert is None


class TestUnexpectedFailures:
    """Test failures outside the Spotify error taxonomy"""

    @pytest.mark.asyncio
    async def test_revoked_token_ends_the_load(self, settings):
        """Test an auth manager failure leaves a retryable failed load"""
        api = Mock()
        api.current_user.side_effect = SpotifyOauthError('invalid_grant')
        api.current_user_playlists.side_effect = SpotifyOauthError('invalid_grant')
        api.current_playback.side_effect = SpotifyOauthError('invalid_grant')
        coordinator = PlaylistSyncCoordinator(SpotifyClient(api=api, settings=settings))

        coordinator.refresh()
        await coordinator.wait_idle()

        snapshot = coordinator.state.snapshot
        assert not snapshot.is_loading
        assert snapshot.load_error
        assert snapshot.alert.title == LOAD_FAILED_TITLE
        assert 'invalid_grant' in snapshot.alert.message

    @pytest.mark.asyncio
    async def test_malformed_profile_ends_the_load(self, fake_client, coordinator, caplog):
        fake_client.pages = [Page(items=[make_playlist('a')])]
        fake_client.user_error = KeyError('id')

        with caplog.at_level(logging.ERROR, logger='playlist_sorter.sync.coordinator'):
            coordinator.refresh()
            await coordinator.wait_idle()

        snapshot = coordinator.state.snapshot
        assert not snapshot.is_loading
        assert snapshot.load_error
        assert snapshot.alert.message.startswith('Unexpected error')
        assert any(record.exc_info and record.exc_info[0] is KeyError for record in caplog.records)

    @pytest.mark.asyncio
    async def test_failed_task_is_logged_as_error(self, coordinator, caplog):
        async def broken():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger='playlist_sorter.sync.coordinator'):
            coordinator._spawn(broken(), name='broken')
            await coordinator.wait_idle()

        errors = [record for record in caplog.records if record.levelno == logging.ERROR]
        assert len(errors) == 1
        assert 'broken' in errors[0].getMessage()
        assert errors[0].exc_info[0] is RuntimeError

    @pytest.mark.asyncio
    async def test_handled_spotify_errors_stay_quiet(self, fake_client, coordinator, caplog):
        fake_client.pages = [Page(items=[])]
        fake_client.user_error = SpotifyError("Unauthorized", http_status=401, is_auth_error=True)

        with caplog.at_level(logging.ERROR, logger='playlist_sorter.sync.coordinator'):
            coordinator.refresh()
            await coordinator.wait_idle()

        assert not any(record.exc_info for record in caplog.records)
        assert coordinator.state.snapshot.load_error
