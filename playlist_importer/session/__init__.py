"""
Import session: intents, background runner and the state owner.
"""

from playlist_importer.session.importer import ImportSession, SessionSnapshot, TrackRow
from playlist_importer.session.intents import (
    CallCompleted,
    CreatePlaylist,
    ExportUnmatched,
    ImportMatched,
    LoadInputPlaylist,
    QueryTrack,
    RefreshPlaylists,
    SelectPlaylist,
    SetIdMapping,
    Tick,
)
from playlist_importer.session.runner import CallRunner

__all__ = [
    "ImportSession",
    "SessionSnapshot",
    "TrackRow",
    "CallRunner",
    "LoadInputPlaylist",
    "SetIdMapping",
    "QueryTrack",
    "SelectPlaylist",
    "CreatePlaylist",
    "RefreshPlaylists",
    "ImportMatched",
    "ExportUnmatched",
    "Tick",
    "CallCompleted",
]
