"""
Import session: the single owner of all importer state.

ImportSession holds the loaded input tracks, the id mapping store, the
fetch orchestrator (with its match cache and remainder set), the playlist
sync driver, the user's Spotify playlists and the error line shown to
the user. It changes state only inside dispatch(intent), one intent at a
time, which makes the ordering of intents the only synchronization
mechanism.

Call Slot:
    After every intent the session "pumps" the shared call slot. If the
    slot is free it takes, in this order:
        1. the oldest pending user request (get/create playlists)
        2. the next page of a running import
        3. the next search or bulk lookup of the orchestrator
    and submits it to the runner. The slot is freed by the matching
    CallCompleted intent.

Errors:
    A SpotifyError from a request sets error_message to
    "Request failed: <operation>", replacing any earlier error; the next
    successful request clears it. Nothing is retried automatically.
    Any other exception from a request, and reconciliation defects such
    as UnexpectedTrackError, propagate out of dispatch().

Generations:
    Every LoadInputPlaylist starts a new generation. Completions of
    searches, lookups and import pages issued under an older generation
    free the slot and are otherwise dropped.

Usage:
    session = ImportSession(id_mapping, runner, save_file=write_export, auth=auth_session)
    session.open()                                    # fetch playlists
    session.dispatch(LoadInputPlaylist(path.read_bytes()))
    while not session.idle:
        session.dispatch(events.get())
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from playlist_importer.core.exceptions import ImporterError, SpotifyError
from playlist_importer.core.logger import get_logger
from playlist_importer.playlist.models import Track
from playlist_importer.playlist.xspf import parse_playlist
from playlist_importer.reconcile.cache import MatchEntry
from playlist_importer.reconcile.mapping import IdMappingStore
from playlist_importer.reconcile.orchestrator import FetchOrchestrator, OrchestratorState
from playlist_importer.reconcile.requests import (
    AddItemsRequest,
    CatalogRequest,
    CreatePlaylistRequest,
    LookupRequest,
    PlaylistsRequest,
    SearchRequest,
)
from playlist_importer.reconcile.slot import CallSlot
from playlist_importer.session.intents import (
    CallCompleted,
    CreatePlaylist,
    ExportUnmatched,
    ImportMatched,
    Intent,
    LoadInputPlaylist,
    QueryTrack,
    RefreshPlaylists,
    SelectPlaylist,
    SetIdMapping,
    Tick,
)
from playlist_importer.spotify.auth import Session
from playlist_importer.spotify.models import SpotifyPlaylist
from playlist_importer.sync.driver import PlaylistSyncDriver


logger = get_logger(__name__)


class Runner(Protocol):
    def submit(self, request: CatalogRequest) -> None: ...


# =============================================================================
# Snapshot
# =============================================================================

@dataclass(frozen=True)
class TrackRow:
    """
    One input track as presented to the user.

    Attributes:
        input_id: Identity of the input track.
        track: The input track.
        matches: Ranked candidates found so far.
        chosen_id: Spotify URI the track is mapped to, or None.
        pending: The mapped Spotify track has not been fetched yet.
    """

    input_id: str
    track: Track
    matches: tuple[MatchEntry, ...]
    chosen_id: str | None
    pending: bool

    @property
    def chosen(self) -> MatchEntry | None:
        for entry in self.matches:
            if entry.candidate.identifier == self.chosen_id:
                return entry
        return None


@dataclass(frozen=True)
class SessionSnapshot:
    rows: tuple[TrackRow, ...]
    playlists: tuple[SpotifyPlaylist, ...]
    selected_playlist_id: str | None
    error_message: str | None
    import_done: bool
    busy: bool
    idle: bool
    minutes_remaining: int | None


# =============================================================================
# Session
# =============================================================================

class ImportSession:
    """
    State and transition function of one importer run.

    Args:
        id_mapping: Write-through mapping store.
        runner: Executes submitted requests and eventually posts their
                CallCompleted intent back to the caller's loop.
        save_file: Receives the exported XSPF content.
        auth: Spotify session, used for the remaining-time display.
    """

    def __init__(
        self,
        id_mapping: IdMappingStore,
        runner: Runner,
        save_file: Callable[[bytes], None] | None = None,
        auth: Session | None = None
    ) -> None:
        self._id_mapping = id_mapping
        self._runner = runner
        self._save_file = save_file
        self._auth = auth

        self._slot = CallSlot()
        self._user_requests: deque[CatalogRequest] = deque()
        self._generation = 0

        self.orchestrator = FetchOrchestrator(id_mapping)
        self.driver = PlaylistSyncDriver(id_mapping)

        self.tracks: tuple[Track, ...] = ()
        self.playlists: list[SpotifyPlaylist] = []
        self.selected_playlist_id: str | None = None
        self.error_message: str | None = None

    def open(self) -> None:
        """Request the user's playlists."""
        self.dispatch(RefreshPlaylists())

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def busy(self) -> bool:
        """A catalog call is outstanding."""
        return self._slot.busy

    @property
    def idle(self) -> bool:
        """No call outstanding and nothing left to issue."""
        return (
            not self._slot.busy
            and not self._user_requests
            and not self.driver.active
            and self.orchestrator.state is OrchestratorState.IDLE
        )

    @property
    def import_done(self) -> bool:
        return self.driver.done

    @property
    def minutes_remaining(self) -> int | None:
        return self._auth.minutes_remaining if self._auth is not None else None

    def snapshot(self) -> SessionSnapshot:
        """Immutable copy of everything the presentation layer shows."""
        cache = self.orchestrator.cache
        remainder = self.orchestrator.remainder
        rows = tuple(
            TrackRow(
                input_id=track.track_id,
                track=track,
                matches=cache.matches(track.track_id),
                chosen_id=self._id_mapping.get(track.track_id),
                pending=track.track_id in remainder,
            )
            for track in self.tracks
        )
        return SessionSnapshot(
            rows=rows,
            playlists=tuple(self.playlists),
            selected_playlist_id=self.selected_playlist_id,
            error_message=self.error_message,
            import_done=self.import_done,
            busy=self.busy,
            idle=self.idle,
            minutes_remaining=self.minutes_remaining,
        )

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, intent: Intent) -> None:
        """
        Apply one intent, then issue the next catalog call if the slot is free.

        Raises:
            PlaylistFormatError: LoadInputPlaylist with a malformed file.
            ReconciliationError: A defect while applying a result.
            ImporterError: ImportMatched without a selected playlist,
                           ExportUnmatched without a save target.
        """
        if isinstance(intent, LoadInputPlaylist):
            self._load(intent.content)
        elif isinstance(intent, SetIdMapping):
            self._set_id_mapping(intent.input_id, intent.output_id)
        elif isinstance(intent, QueryTrack):
            self.orchestrator.enqueue_manual(intent.input_id, intent.query)
        elif isinstance(intent, SelectPlaylist):
            self.selected_playlist_id = intent.playlist_id
        elif isinstance(intent, CreatePlaylist):
            self._user_requests.append(self.driver.create_remote_playlist(intent.name))
        elif isinstance(intent, RefreshPlaylists):
            self._user_requests.append(PlaylistsRequest())
        elif isinstance(intent, ImportMatched):
            self._import_matched()
        elif isinstance(intent, ExportUnmatched):
            self._export_unmatched()
        elif isinstance(intent, Tick):
            self._tick()
        elif isinstance(intent, CallCompleted):
            self._call_completed(intent)
        else:
            raise TypeError(f"Unknown intent: {intent!r}")

        self._pump()

    def _pump(self) -> None:
        if self._slot.busy:
            return

        request: CatalogRequest | None
        if self._user_requests:
            request = self._user_requests.popleft()
        else:
            request = self.driver.next_request(self._generation) or self.orchestrator.next_request()

        if request is None:
            return

        self._slot.try_acquire(request)
        self._runner.submit(request)

    # =========================================================================
    # User Intents
    # =========================================================================

    def _load(self, content: bytes) -> None:
        playlist = parse_playlist(content)

        self._generation += 1
        self.tracks = playlist.tracks
        self.driver.reset()
        self.orchestrator.start_session(playlist.tracks, self._generation)
        logger.info(f"Loaded {len(self.tracks)} tracks" + (f" from '{playlist.title}'" if playlist.title else ""))

    def _set_id_mapping(self, input_id: str, output_id: str | None) -> None:
        self.orchestrator.cache.track(input_id)
        self._id_mapping.set(input_id, output_id)
        # The stored choice was replaced, its lookup is no longer needed
        self.orchestrator.remainder.discard(input_id)

    def _import_matched(self) -> None:
        if self.selected_playlist_id is None:
            raise ImporterError("No playlist selected for the import")
        self.driver.start_import(self.selected_playlist_id, self.tracks)

    def _export_unmatched(self) -> None:
        if self._save_file is None:
            raise ImporterError("No export target configured")
        self._save_file(self.driver.export_unmatched(self.tracks))

    def _tick(self) -> None:
        if self._auth is not None and self._auth.expired:
            logger.warning("Your Spotify session has expired, restart to log in again")
        logger.debug(f"Tick: busy={self.busy} idle={self.idle} queued={self.orchestrator.queued}")

    # =========================================================================
    # Completions
    # =========================================================================

    def _call_completed(self, completed: CallCompleted) -> None:
        request = completed.request
        self._slot.release(request)

        if request.session_bound and request.generation != self._generation:
            logger.debug(f"Dropping stale '{request.operation}' result (generation {request.generation})")
            return

        if completed.error is not None:
            if not isinstance(completed.error, SpotifyError):
                raise completed.error
            self._request_failed(request, completed.error)
            return

        self.error_message = None
        self._request_succeeded(request, completed.result)

    def _request_failed(self, request: CatalogRequest, error: SpotifyError) -> None:
        self.error_message = f"Request failed: {request.operation}"
        logger.error(f"{self.error_message} ({error.message})")

        if isinstance(request, AddItemsRequest):
            self.driver.fail(request)
        elif isinstance(request, (SearchRequest, LookupRequest)):
            self.orchestrator.fail(request)

    def _request_succeeded(self, request: CatalogRequest, result: Any) -> None:
        if isinstance(request, SearchRequest):
            self.orchestrator.complete_search(request, result)
        elif isinstance(request, LookupRequest):
            self.orchestrator.complete_lookup(request, result)
        elif isinstance(request, AddItemsRequest):
            self.driver.complete_page(request)
        elif isinstance(request, PlaylistsRequest):
            self.playlists = list(result)
            logger.debug(f"{len(self.playlists)} writable playlists")
        elif isinstance(request, CreatePlaylistRequest):
            self.playlists.append(result)
            self.selected_playlist_id = result.playlist_id
            logger.info(f"Created playlist '{result.name}'")
