"""
Utilities package
Logging, exceptions and formatting helpers
"""

from .exceptions import (
    PlaylistSorterError,
    ConfigError,
    SpotifyError,
    StateAccessError
)
from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    get_current_log_file
)
from .helpers import (
    format_duration,
    truncate_text,
    chunked,
    join_names
)

__all__ = [
    # Exceptions
    'PlaylistSorterError',
    'ConfigError',
    'SpotifyError',
    'StateAccessError',

    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'get_current_log_file',

    # Helper exports
    'format_duration',
    'truncate_text',
    'chunked',
    'join_names'
]
