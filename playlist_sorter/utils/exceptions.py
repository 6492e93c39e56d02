"""
Exception classes for playlist-sorter.

Exception Hierarchy:
    PlaylistSorterError (base)
        ConfigError - Configuration file issues
        SpotifyError - Spotify API or network issues
        StateAccessError - Sorter state written from the wrong thread
"""

from typing import Optional


class PlaylistSorterError(Exception):
    """
    Base exception for all playlist-sorter errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., playlist id, status code).

    Example:
        try:
            # some operation
        except PlaylistSorterError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(PlaylistSorterError):
    """
    Raised when the configuration file cannot be read or parsed.

    Example:
        raise ConfigError(
            "Invalid YAML syntax in configuration file",
            details={'file_path': '/path/to/config.yaml'}
        )
    """
    pass


class SpotifyError(PlaylistSorterError):
    """
    Raised when a Spotify Web API request fails.

    Covers both HTTP errors returned by the API and transport failures
    (connection refused, timeouts). Never retried automatically: the user
    triggers a new refresh instead.

    Attributes:
        http_status: HTTP status code if the API answered, None otherwise.
        is_auth_error: True for 401 responses (token missing or expired).
        is_rate_limit: True for 429 responses.

    Example:
        raise SpotifyError(
            "Failed to fetch playlists: service unavailable",
            details={'endpoint': 'current_user_playlists'},
            http_status=503
        )
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        http_status: Optional[int] = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        super().__init__(message, details)
        self.http_status = http_status
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class StateAccessError(PlaylistSorterError):
    """
    Raised when sorter state is mutated outside of its owning thread.

    All state writes must happen on the thread running the event loop;
    API completions are resumed there before they touch the state.
    """
    pass
