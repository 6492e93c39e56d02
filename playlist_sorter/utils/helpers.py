"""
Helper functions for Playlist-Sorter
Text formatting used by the sorter screen
"""

from typing import Iterable, List, Sequence, TypeVar

T = TypeVar('T')


def format_duration(seconds: int) -> str:
    """
    Format duration in seconds to human-readable string

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string (e.g., "3:45" or "1:23:45")
    """
    if seconds < 0:
        return "0:00"

    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def truncate_text(text: str, width: int, placeholder: str = "…") -> str:
    """
    Shorten text to fit a fixed width

    Args:
        text: Text to shorten
        width: Maximum length of the result
        placeholder: Marker appended when text is cut

    Returns:
        Text no longer than width characters
    """
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= len(placeholder):
        return text[:width]
    return text[:width - len(placeholder)] + placeholder


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Split a sequence into consecutive rows of at most size items

    Args:
        items: Items to split
        size: Row length, must be positive

    Returns:
        List of rows
    """
    if size < 1:
        raise ValueError(f"Row size must be positive: {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def join_names(names: Iterable[str], separator: str = ", ") -> str:
    """Join non-empty names, e.g. a track's artists"""
    return separator.join(name for name in names if name)
