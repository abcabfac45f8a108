"""
Intents consumed by ImportSession.dispatch().

Every state change of an import session is triggered by exactly one of
these messages: user actions (load a file, pick a match, search again,
choose or create a playlist, import, export), the periodic Tick, and
CallCompleted, posted when a catalog request finished.
"""

from dataclasses import dataclass
from typing import Any

from playlist_importer.reconcile.requests import CatalogRequest


@dataclass(frozen=True)
class LoadInputPlaylist:
    """Raw XSPF content of the playlist to match."""

    content: bytes


@dataclass(frozen=True)
class SetIdMapping:
    """Choose `output_id` for `input_id`; None means "don't import"."""

    input_id: str
    output_id: str | None


@dataclass(frozen=True)
class QueryTrack:
    """Search again for `input_id` with a user-supplied query."""

    input_id: str
    query: str


@dataclass(frozen=True)
class SelectPlaylist:
    playlist_id: str


@dataclass(frozen=True)
class CreatePlaylist:
    name: str


@dataclass(frozen=True)
class RefreshPlaylists:
    pass


@dataclass(frozen=True)
class ImportMatched:
    pass


@dataclass(frozen=True)
class ExportUnmatched:
    pass


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class CallCompleted:
    """
    Outcome of a catalog request.

    Exactly one of `result` and `error` is meaningful: `error` is set when
    the request raised.
    """

    request: CatalogRequest
    result: Any = None
    error: BaseException | None = None


Intent = (
    LoadInputPlaylist
    | SetIdMapping
    | QueryTrack
    | SelectPlaylist
    | CreatePlaylist
    | RefreshPlaylists
    | ImportMatched
    | ExportUnmatched
    | Tick
    | CallCompleted
)
