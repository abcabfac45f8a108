"""
Playlist file handling for spotify-playlist-importer.

    - models: Track and Playlist dataclasses, track identity and search queries
    - xspf: XSPF reader and writer
"""

from playlist_importer.playlist.models import Playlist, Track
from playlist_importer.playlist.xspf import (
    EXPORT_FILENAME,
    EXPORT_TITLE,
    parse_playlist,
    to_xspf,
)

__all__ = [
    "Playlist",
    "Track",
    "parse_playlist",
    "to_xspf",
    "EXPORT_FILENAME",
    "EXPORT_TITLE",
]
