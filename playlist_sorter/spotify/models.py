"""
Data models for the Spotify entities used by the playlist sorter

The models are immutable snapshots of Spotify Web API responses. Each one
offers a ``from_spotify_data()`` factory that extracts only the fields the
sorter needs and tolerates the optional or null fields the API is known to
return (local tracks without ids, playlists without images, owners without
display names).

Entities:
- Track / Episode: items that can be playing
- User: the playlist owner or the signed-in user
- PlaylistItemsReference: lazy reference to a playlist's items (href + total)
- Playlist: playlist metadata, never the materialized item list
- Page: one page of a paginated response plus the cursor to the next one
- PlaybackContext: what is currently playing
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar, Union

from ..utils.helpers import format_duration, join_names

T = TypeVar('T')


@dataclass(frozen=True)
class User:
    """
    Spotify user profile

    Attributes:
        id: Spotify user id, used for ownership checks
        uri: Spotify URI (spotify:user:id)
        display_name: Name shown in the client, may be missing
    """
    id: str
    uri: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=data['id'],
            uri=data.get('uri'),
            display_name=data.get('display_name')
        )

    @property
    def name(self) -> str:
        """Display name with fallback to the user id"""
        return self.display_name or self.id


@dataclass(frozen=True)
class Track:
    """
    A catalog track

    Local files have no id and a ``spotify:local:`` URI; tracks without a URI
    cannot be added to playlists.

    Attributes:
        name: Track title
        id: Spotify track id (None for local files)
        uri: Spotify URI used when adding the track to a playlist
        artists: Artist names in credit order
        album_name: Name of the album the track belongs to
        duration_ms: Track length in milliseconds
    """
    name: str
    id: Optional[str] = None
    uri: Optional[str] = None
    artists: Tuple[str, ...] = ()
    album_name: Optional[str] = None
    duration_ms: int = 0

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'Track':
        """
        Build a Track from a track object

        Accepts playlist item wrappers too, where the track is nested under 'track'.
        """
        track_data = data.get('track') if isinstance(data.get('track'), dict) else data
        album = track_data.get('album') or {}
        return cls(
            name=track_data.get('name') or "",
            id=track_data.get('id'),
            uri=track_data.get('uri'),
            artists=tuple(artist.get('name', '') for artist in track_data.get('artists') or []),
            album_name=album.get('name'),
            duration_ms=track_data.get('duration_ms') or 0
        )

    @property
    def all_artists(self) -> str:
        return join_names(self.artists)

    @property
    def duration_str(self) -> str:
        return format_duration(self.duration_ms // 1000)


@dataclass(frozen=True)
class Episode:
    """A podcast episode; it can be playing but never becomes the current track"""
    name: str
    id: Optional[str] = None
    uri: Optional[str] = None
    show_name: Optional[str] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'Episode':
        show = data.get('show') or {}
        return cls(
            name=data.get('name') or "",
            id=data.get('id'),
            uri=data.get('uri'),
            show_name=show.get('name')
        )


@dataclass(frozen=True)
class PlaylistItemsReference:
    """
    Lazy reference to a playlist's items

    Attributes:
        href: API endpoint for the full item list, None for local projections
        total: Number of items in the playlist
    """
    href: Optional[str] = None
    total: int = 0

    @classmethod
    def from_spotify_data(cls, data: Optional[Dict[str, Any]]) -> 'PlaylistItemsReference':
        if not data:
            return cls()
        return cls(href=data.get('href'), total=data.get('total') or 0)


@dataclass(frozen=True)
class Playlist:
    """
    Playlist metadata with a lazy reference to its items

    Attributes:
        id: Spotify playlist id
        uri: Spotify URI, the identity used by the sorter grid
        name: Playlist title
        owner: Owning user
        public: Visibility flag (None when the API does not report it)
        collaborative: Whether other users may edit the playlist
        items: Reference to the playlist's items (href + total)
        snapshot_id: Version token, changes on every mutation
        description: Playlist description (may contain HTML)
        href: API endpoint of the playlist
        external_urls: Links to the playlist on external platforms
        images: Artwork in multiple resolutions
    """
    id: str
    uri: str
    name: str
    owner: Optional[User] = None
    public: Optional[bool] = None
    collaborative: bool = False
    items: PlaylistItemsReference = field(default_factory=PlaylistItemsReference)
    snapshot_id: Optional[str] = None
    description: Optional[str] = None
    href: Optional[str] = None
    external_urls: Dict[str, str] = field(default_factory=dict, hash=False)
    images: Tuple[Dict[str, Any], ...] = field(default=(), hash=False)

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'Playlist':
        """
        Build a Playlist from a simplified or full playlist object

        The item reference is read from 'tracks' and falls back to 'items',
        the name newer API responses use for the same object.
        """
        owner_data = data.get('owner')
        items_data = data.get('tracks')
        if items_data is None:
            items_data = data.get('items')
        return cls(
            id=data['id'],
            uri=data.get('uri') or f"spotify:playlist:{data['id']}",
            name=data.get('name') or "",
            owner=User.from_spotify_data(owner_data) if owner_data else None,
            public=data.get('public'),
            collaborative=bool(data.get('collaborative', False)),
            items=PlaylistItemsReference.from_spotify_data(items_data),
            snapshot_id=data.get('snapshot_id'),
            description=data.get('description'),
            href=data.get('href'),
            external_urls=data.get('external_urls') or {},
            images=tuple(data.get('images') or ())
        )

    def is_editable_by(self, user: User) -> bool:
        """
        Whether the user may add tracks to this playlist

        Only collaborative playlists and playlists the user owns qualify.
        """
        if self.collaborative:
            return True
        return self.owner is not None and self.owner.id == user.id

    def as_reference(self, snapshot_id: Optional[str] = None) -> 'Playlist':
        """
        Lightweight local projection of a freshly created playlist

        The server-side item count is not awaited: the projection always
        starts with an empty items reference.

        Args:
            snapshot_id: Latest known snapshot id, defaults to this playlist's own
        """
        return replace(
            self,
            items=PlaylistItemsReference(href=None, total=0),
            snapshot_id=snapshot_id if snapshot_id is not None else self.snapshot_id
        )

    def with_added_items(self, count: int, snapshot_id: Optional[str]) -> 'Playlist':
        """Copy reflecting count items added and the snapshot id returned for it"""
        return replace(
            self,
            items=replace(self.items, total=self.items.total + count),
            snapshot_id=snapshot_id or self.snapshot_id
        )

    @property
    def total_items(self) -> int:
        return self.items.total


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a paginated API response

    Attributes:
        items: Items of this page, in server order
        next_cursor: Opaque cursor for the next page, None when exhausted
        total: Total number of items across all pages
        offset: Offset of the first item of this page
    """
    items: List[T]
    next_cursor: Optional[str] = None
    total: int = 0
    offset: int = 0

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any], item_factory: Callable[[Dict[str, Any]], T]) -> 'Page[T]':
        """
        Build a page from a paging object

        Null entries, which the API returns for unavailable items, are skipped.
        """
        return cls(
            items=[item_factory(item) for item in data.get('items') or [] if item],
            next_cursor=data.get('next'),
            total=data.get('total') or 0,
            offset=data.get('offset') or 0
        )

    @property
    def is_last(self) -> bool:
        return not self.next_cursor


@dataclass(frozen=True)
class PlaybackContext:
    """
    What the user is currently playing

    Attributes:
        is_playing: Whether playback is running (False when paused)
        currently_playing_type: 'track', 'episode', 'ad' or 'unknown'
        item: The playing Track or Episode, None for ads or unknown items
        progress_ms: Position within the item
        device_name: Name of the active device, if reported
    """
    is_playing: bool
    currently_playing_type: str
    item: Optional[Union[Track, Episode]] = None
    progress_ms: Optional[int] = None
    device_name: Optional[str] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'PlaybackContext':
        item_data = data.get('item')
        playing_type = data.get('currently_playing_type') or 'unknown'

        item: Optional[Union[Track, Episode]] = None
        if item_data:
            item_type = item_data.get('type', playing_type)
            if item_type == 'track':
                item = Track.from_spotify_data(item_data)
            elif item_type == 'episode':
                item = Episode.from_spotify_data(item_data)

        device = data.get('device') or {}
        return cls(
            is_playing=bool(data.get('is_playing', False)),
            currently_playing_type=playing_type,
            item=item,
            progress_ms=data.get('progress_ms'),
            device_name=device.get('name')
        )

    @property
    def track(self) -> Optional[Track]:
        """The playing item if it is a track, None otherwise"""
        return self.item if isinstance(self.item, Track) else None
