"""
Logical catalog requests.

Every network call the importer makes is described by one of the request
objects below before it is issued. A request knows:

    - operation: the name used in the "Request failed: <operation>" text
    - generation: the playlist load it belongs to, so completions that
      arrive after the user loaded another playlist can be discarded
    - execute(catalog): how to perform it against the catalog client

Requests are executed off the event loop by session.runner.CallRunner and
their results come back as CallCompleted intents.

Also defines FetchTask, the unit of work of the match orchestrator's
search queue, and its initiators Auto(attempt) and Manual.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol

from playlist_importer.playlist.models import Track


class CatalogApi(Protocol):
    """The subset of the Spotify client the importer calls."""

    def search_tracks(self, query: str) -> list[Track]: ...

    def tracks(self, uris: list[str]) -> list[Track | None]: ...

    def user_playlists(self) -> list[Any]: ...

    def create_playlist(self, name: str) -> Any: ...

    def add_items(self, playlist_id: str, uris: list[str]) -> None: ...


# =============================================================================
# Fetch Tasks
# =============================================================================

@dataclass(frozen=True)
class Auto:
    """Search queued by the orchestrator. Only attempt 1 may trigger a retry."""

    attempt: int = 1


@dataclass(frozen=True)
class Manual:
    """Search requested by the user. Never retried."""


Initiator = Auto | Manual


@dataclass(frozen=True)
class FetchTask:
    input_id: str
    query: str
    initiator: Initiator


# =============================================================================
# Requests
# =============================================================================

@dataclass(frozen=True, eq=False)
class CatalogRequest:
    """
    Base class of all catalog requests.

    Requests compare by identity: two searches for the same text are
    still two different calls.
    """

    operation: ClassVar[str] = ""
    # Results of session-bound requests are dropped after a playlist reload
    session_bound: ClassVar[bool] = True

    generation: int = field(default=0, kw_only=True)

    def execute(self, catalog: CatalogApi) -> Any:
        raise NotImplementedError


@dataclass(frozen=True, eq=False)
class SearchRequest(CatalogRequest):
    operation: ClassVar[str] = "search track"

    task: FetchTask

    def execute(self, catalog: CatalogApi) -> list[Track]:
        return catalog.search_tracks(self.task.query)


@dataclass(frozen=True, eq=False)
class LookupRequest(CatalogRequest):
    """
    Bulk lookup of one remainder page.

    Attributes:
        entries: (input_id, output_id) pairs of the page. Several input
                 tracks may be mapped to the same Spotify track.
        page_index: Index of the page within the remainder set.
    """

    operation: ClassVar[str] = "get tracks"

    entries: tuple[tuple[str, str], ...]
    page_index: int = 0

    @property
    def output_ids(self) -> list[str]:
        """Distinct Spotify URIs to request, in page order."""
        return list(dict.fromkeys(output_id for _, output_id in self.entries))

    def owners(self) -> dict[str, list[str]]:
        """Map each requested Spotify URI to the input ids mapped to it."""
        table: dict[str, list[str]] = {}
        for input_id, output_id in self.entries:
            table.setdefault(output_id, []).append(input_id)
        return table

    def execute(self, catalog: CatalogApi) -> list[Track | None]:
        return catalog.tracks(self.output_ids)


@dataclass(frozen=True, eq=False)
class AddItemsRequest(CatalogRequest):
    operation: ClassVar[str] = "add to playlist"

    playlist_id: str
    uris: tuple[str, ...]
    page_index: int = 0

    def execute(self, catalog: CatalogApi) -> None:
        catalog.add_items(self.playlist_id, list(self.uris))


@dataclass(frozen=True, eq=False)
class PlaylistsRequest(CatalogRequest):
    operation: ClassVar[str] = "get playlists"
    session_bound: ClassVar[bool] = False

    def execute(self, catalog: CatalogApi) -> list[Any]:
        return catalog.user_playlists()


@dataclass(frozen=True, eq=False)
class CreatePlaylistRequest(CatalogRequest):
    operation: ClassVar[str] = "create playlist"
    session_bound: ClassVar[bool] = False

    name: str

    def execute(self, catalog: CatalogApi) -> Any:
        return catalog.create_playlist(self.name)
