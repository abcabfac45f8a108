"""
Utility functions for spotify-playlist-importer.

This module provides common helpers used across the application:
    - Spotify id extraction from URIs and URLs
    - Duration formatting for display
    - Fixed-size page arithmetic shared by bulk lookups and playlist writes

Usage:
    from playlist_importer.utils import (
        extract_spotify_id,
        format_duration,
        page_count
    )
"""

import math
from typing import Sequence, TypeVar


T = TypeVar("T")

# Spotify accepts at most 50 track ids per bulk lookup and we use the same
# page size when adding items to a playlist.
BATCH_SIZE = 50


def extract_spotify_id(url_or_id: str) -> str:
    """
    Extract Spotify ID from a URL or URI, or return the ID as-is.

    Handles various Spotify formats:
        - https://open.spotify.com/track/ID
        - https://open.spotify.com/track/ID?si=xxx
        - spotify:track:ID
        - Just the ID

    Examples:
        extract_spotify_id("https://open.spotify.com/track/abc123?si=xyz")
        # Returns: "abc123"

        extract_spotify_id("spotify:track:abc123")
        # Returns: "abc123"
    """
    if url_or_id.startswith("spotify:"):
        return url_or_id.split(":")[-1]

    if "spotify.com" in url_or_id:
        url_or_id = url_or_id.split("?")[0]
        return url_or_id.rstrip("/").split("/")[-1]

    return url_or_id


def extract_playlist_id(url_or_id: str) -> str:
    """
    Extract a playlist ID from a Spotify playlist URL, URI, or bare ID.

    Raises:
        ValueError: If a URL or URI is given that does not point to a playlist.
    """
    if ("spotify.com" in url_or_id or url_or_id.startswith("spotify:")) and "playlist" not in url_or_id:
        raise ValueError(f"Not a playlist URL: {url_or_id}")
    return extract_spotify_id(url_or_id)


def format_duration(duration_ms: int) -> str:
    """
    Format a duration in milliseconds to a human-readable string.

    Examples:
        format_duration(225000)   # "3:45"
        format_duration(3750000)  # "1:02:30"
        format_duration(0)        # "0:00"
    """
    hours = duration_ms // 3_600_000
    minutes = (duration_ms % 3_600_000) // 60_000
    seconds = (duration_ms % 60_000) // 1_000
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def page_count(total: int, size: int = BATCH_SIZE) -> int:
    """Number of pages needed to cover `total` items."""
    return math.ceil(total / size)


def page(items: Sequence[T], index: int, size: int = BATCH_SIZE) -> list[T]:
    """Return page `index` (0-based) of `items`."""
    return list(items[index * size:(index + 1) * size])
