"""
Playlist sync driver: pushes confirmed matches to a Spotify playlist.

Two outputs are produced from the loaded input playlist:

    - Import: the input track list is cut into pages of BATCH_SIZE, each
      page is filtered down to the tracks that currently have a mapping,
      and the mapped Spotify URIs are added to the selected playlist with
      one "add items" call per page. Pages are sent one at a time through
      the shared call slot. A page whose tracks are all unmapped is
      skipped without a call. The mapping is read when a page is issued,
      so tracks mapped during an import only make it into later pages.

    - Export: tracks with no mapping are written to an XSPF document so
      the user can keep them elsewhere.

Usage:
    driver = PlaylistSyncDriver(id_mapping)
    driver.start_import("37i9dQZF1DXcBWIGoYBM5M", playlist.tracks)
    while (request := driver.next_request(generation)) is not None:
        request.execute(catalog)
        driver.complete_page(request)
    assert driver.done
"""

from typing import Sequence

from playlist_importer.core.logger import get_logger
from playlist_importer.playlist.models import Playlist, Track
from playlist_importer.playlist.xspf import EXPORT_TITLE, to_xspf
from playlist_importer.reconcile.mapping import IdMappingStore
from playlist_importer.reconcile.requests import AddItemsRequest, CreatePlaylistRequest
from playlist_importer.utils import page, page_count


logger = get_logger(__name__)


class PlaylistSyncDriver:
    """
    Import and export of the loaded playlist.

    Attributes:
        done: True once every page of the last import was sent.
        active: True while an import still has pages to send or a page in flight.
    """

    def __init__(self, id_mapping: IdMappingStore) -> None:
        self._id_mapping = id_mapping
        self._tracks: tuple[Track, ...] = ()
        self._playlist_id: str | None = None
        self._cursor = 0
        self._pages = 0
        self._in_flight: AddItemsRequest | None = None
        self.active = False
        self.done = False

    # =========================================================================
    # Export
    # =========================================================================

    def unmatched_tracks(self, tracks: Sequence[Track]) -> list[Track]:
        return [track for track in tracks if track.track_id not in self._id_mapping]

    def export_unmatched(self, tracks: Sequence[Track]) -> bytes:
        """
        Serialize the tracks without a mapping to XSPF.

        Returns:
            UTF-8 encoded document, tracks in input order.
        """
        unmatched = self.unmatched_tracks(tracks)
        logger.info(f"Exporting {len(unmatched)} unmatched tracks")
        playlist = Playlist.with_tracks_and_title(unmatched, EXPORT_TITLE)
        return to_xspf(playlist).encode("utf-8")

    # =========================================================================
    # Remote Playlists
    # =========================================================================

    def create_remote_playlist(self, name: str) -> CreatePlaylistRequest:
        logger.info(f"Creating playlist '{name}'")
        return CreatePlaylistRequest(name)

    # =========================================================================
    # Import
    # =========================================================================

    def reset(self) -> None:
        """Abandon any import in progress."""
        self._tracks = ()
        self._playlist_id = None
        self._cursor = 0
        self._pages = 0
        self._in_flight = None
        self.active = False
        self.done = False

    def start_import(self, playlist_id: str, tracks: Sequence[Track]) -> None:
        """Start (or restart from the first page) an import into `playlist_id`."""
        self._tracks = tuple(tracks)
        self._playlist_id = playlist_id
        self._cursor = 0
        self._pages = page_count(len(self._tracks))
        self._in_flight = None
        self.active = True
        self.done = False
        logger.info(f"Importing {len(self._tracks)} tracks into {playlist_id} ({self._pages} pages)")

    @property
    def pages(self) -> int:
        return self._pages

    @property
    def cursor(self) -> int:
        return self._cursor

    def next_request(self, generation: int = 0) -> AddItemsRequest | None:
        """
        Build the request for the next page that has mapped tracks.

        Returns None while a page is in flight, when no import is running,
        or when the import finished (which sets `done` if the remaining
        pages were all empty).
        """
        if not self.active or self._in_flight is not None:
            return None

        while self._cursor < self._pages:
            index = self._cursor
            self._cursor += 1
            uris = tuple(
                output_id
                for output_id in (self._id_mapping.get(track.track_id) for track in page(self._tracks, index))
                if output_id is not None
            )
            if not uris:
                logger.debug(f"Skipping import page {index}: no mapped tracks")
                continue

            self._in_flight = AddItemsRequest(
                self._playlist_id,
                uris,
                page_index=index,
                generation=generation
            )
            return self._in_flight

        self._finish_import()
        return None

    def complete_page(self, request: AddItemsRequest) -> None:
        if self._in_flight is not request:
            return
        self._in_flight = None
        logger.debug(f"Added {len(request.uris)} tracks (page {request.page_index + 1}/{self._pages})")
        if self._cursor >= self._pages:
            self._finish_import()

    def fail(self, request: AddItemsRequest) -> None:
        """Stop the import after a failed page. start_import() starts over."""
        if self._in_flight is not request:
            return
        self._in_flight = None
        self.active = False
        logger.warning(f"Import stopped at page {request.page_index + 1}/{self._pages}")

    def _finish_import(self) -> None:
        self.active = False
        self.done = True
        logger.info("Import succeeded")
