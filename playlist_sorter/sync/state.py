"""
Observable state of the sorter screen

``SorterState`` holds a single immutable ``SorterSnapshot`` and notifies
subscribers after every change. It has exactly one writer, the
``update()`` method, which only accepts calls from the thread that created
the state (the thread running the event loop). Front ends only read
snapshots and never mutate them.
"""

import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, List, Optional, Tuple

from ..spotify.models import Playlist, Track, User
from ..utils.exceptions import StateAccessError
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AlertItem:
    """A dismissible message shown to the user"""
    title: str
    message: str


@dataclass(frozen=True)
class SorterSnapshot:
    """
    Everything the sorter screen renders

    Attributes:
        track: Currently playing track, None until one is known
        playlists: Playlists the user owns or collaborates on, in server order
        is_loading: True while playlists are being fetched
        load_error: True after the last playlist load failed
        alert: Pending alert, None when there is nothing to show
        current_user: Signed-in user from the latest refresh
        draft_name: Text of the new playlist name input
        draft_focused: Whether the name input holds focus
    """
    track: Optional[Track] = None
    playlists: Tuple[Playlist, ...] = ()
    is_loading: bool = False
    load_error: bool = False
    alert: Optional[AlertItem] = None
    current_user: Optional[User] = None
    draft_name: str = ""
    draft_focused: bool = False


Subscriber = Callable[[SorterSnapshot], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by SorterState.subscribe()"""
    callback: Subscriber
    state: Optional['SorterState'] = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self.state is not None

    def cancel(self) -> None:
        """Stop receiving snapshots; safe to call more than once"""
        if self.state is not None:
            self.state.unsubscribe(self)


class SorterState:
    """
    Single-writer observable holder of the sorter snapshot

    Subscribers receive the current snapshot as soon as they subscribe and
    then every new snapshot after each update. An exception raised by one
    subscriber is logged and does not prevent delivery to the others.
    """

    def __init__(self, initial: Optional[SorterSnapshot] = None):
        self._snapshot = initial or SorterSnapshot()
        self._subscriptions: List[Subscription] = []
        self._owner_thread = threading.get_ident()

    @property
    def snapshot(self) -> SorterSnapshot:
        return self._snapshot

    def subscribe(self, callback: Subscriber) -> Subscription:
        """
        Register a callback for snapshot changes

        Args:
            callback: Called with each new snapshot

        Returns:
            Subscription handle; cancel it to stop receiving updates
        """
        subscription = Subscription(callback=callback, state=self)
        self._subscriptions.append(subscription)
        self._deliver(subscription, self._snapshot)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        subscription.state = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def update(self, **changes) -> SorterSnapshot:
        """
        Replace fields of the snapshot and notify subscribers

        Args:
            **changes: SorterSnapshot fields to replace

        Returns:
            The new snapshot

        Raises:
            StateAccessError: If called from a thread other than the owner
            TypeError: If a field name is unknown
        """
        if threading.get_ident() != self._owner_thread:
            raise StateAccessError(
                "Sorter state can only be updated from the event loop thread",
                details={'fields': sorted(changes)}
            )

        self._snapshot = replace(self._snapshot, **changes)
        for subscription in list(self._subscriptions):
            self._deliver(subscription, self._snapshot)
        return self._snapshot

    def append_playlists(self, playlists: Iterable[Playlist]) -> SorterSnapshot:
        """Append playlists to the end of the collection, keeping their order"""
        new_items = tuple(playlists)
        if not new_items:
            return self._snapshot
        return self.update(playlists=self._snapshot.playlists + new_items)

    def prepend_playlist(self, playlist: Playlist) -> SorterSnapshot:
        """Insert a playlist at the front of the collection"""
        return self.update(playlists=(playlist,) + self._snapshot.playlists)

    def replace_playlist(self, playlist: Playlist) -> SorterSnapshot:
        """
        Swap every entry with the same URI for the given playlist

        Does nothing when the playlist is no longer in the collection
        (a refresh may have cleared it in the meantime).
        """
        playlists = self._snapshot.playlists
        if not any(p.uri == playlist.uri for p in playlists):
            return self._snapshot
        return self.update(playlists=tuple(playlist if p.uri == playlist.uri else p for p in playlists))

    @staticmethod
    def _deliver(subscription: Subscription, snapshot: SorterSnapshot) -> None:
        try:
            subscription.callback(snapshot)
        except Exception:
            logger.exception("Sorter state subscriber failed")
