"""
Sync package - keeps the sorter screen's state in line with Spotify

- PlaylistSyncCoordinator: refresh, currently-playing, create and add operations
- SorterState / SorterSnapshot: observable single-writer state the screen renders
- AlertItem: dismissible message raised by failed playlist loads
"""

from .coordinator import PlaylistSyncCoordinator, LOAD_FAILED_TITLE
from .state import AlertItem, SorterSnapshot, SorterState, Subscription

__all__ = [
    'PlaylistSyncCoordinator',
    'LOAD_FAILED_TITLE',
    'AlertItem',
    'SorterSnapshot',
    'SorterState',
    'Subscription',
]
