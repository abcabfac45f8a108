"""
Fetch orchestrator: drives the matching of one loaded playlist.

The orchestrator owns the per-load state (search queue, match cache,
remainder set) and decides which catalog call to make next. It never
performs I/O itself: the import session asks next_request() for work
whenever the shared call slot is free, executes the request, and feeds
the outcome back through complete_search(), complete_lookup() or fail().

Workflow:
    1. start_session() queues one Auto(1) search per input track, in
       playlist order, and rebuilds the remainder set from the stored
       id mapping.
    2. Searches are served strictly FIFO, one at a time.
    3. A search with results is merged into the match cache, which sets
       the default mapping if the user has not chosen one.
    4. An Auto(1) search with no results is retried once with the
       adjusted query (queued at the back), unless the adjusted query is
       identical to the original one. Auto(2) and Manual searches are
       never retried.
    5. Once the queue is empty, remainder pages are bulk-looked-up in
       increasing page order until the cursor reaches the end.

States:
    IDLE      nothing queued, nothing in flight, remainder exhausted
    DRAINING  anything else

Usage:
    orchestrator = FetchOrchestrator(id_mapping)
    orchestrator.start_session(playlist.tracks, generation=1)

    while (request := orchestrator.next_request()) is not None:
        result = request.execute(catalog)
        if isinstance(request, SearchRequest):
            orchestrator.complete_search(request, result)
        else:
            orchestrator.complete_lookup(request, result)
"""

from collections import deque
from enum import Enum
from typing import Iterable

from playlist_importer.core.exceptions import UnexpectedTrackError
from playlist_importer.core.logger import (
    format_matched_message,
    get_logger,
    log_unmatched_track,
)
from playlist_importer.playlist.models import Track
from playlist_importer.reconcile.cache import MatchCache, RemainderSet
from playlist_importer.reconcile.mapping import IdMappingStore
from playlist_importer.reconcile.requests import (
    Auto,
    CatalogRequest,
    FetchTask,
    LookupRequest,
    Manual,
    SearchRequest,
)


logger = get_logger(__name__)


class OrchestratorState(Enum):
    IDLE = "idle"
    DRAINING = "draining"


class FetchOrchestrator:
    """
    One-call-at-a-time scheduler for searches and bulk lookups.

    Attributes:
        cache: Match cache of the current load.
        remainder: Remainder set of the current load.
        generation: Generation stamped on the requests of the current load.
    """

    def __init__(self, id_mapping: IdMappingStore) -> None:
        self._id_mapping = id_mapping
        self._queue: deque[FetchTask] = deque()
        self._in_flight: CatalogRequest | None = None
        self.remainder = RemainderSet()
        self.cache = MatchCache((), id_mapping, self.remainder)
        self.generation = 0

    # =========================================================================
    # Session
    # =========================================================================

    def start_session(self, tracks: Iterable[Track], generation: int) -> None:
        """
        Discard the previous load and queue work for `tracks`.

        A call of the previous load that is still running is forgotten;
        its completion must be dropped by the caller (its generation no
        longer matches).
        """
        tracks = list(tracks)
        self.generation = generation
        self._in_flight = None

        self._queue = deque(
            FetchTask(track.track_id, track.query(), Auto(1)) for track in tracks
        )

        # Every mapped track is pending: the new cache has no candidates yet
        remainder_entries: dict[str, str] = {}
        for track in tracks:
            output_id = self._id_mapping.get(track.track_id)
            if output_id is not None:
                remainder_entries.setdefault(track.track_id, output_id)

        self.remainder = RemainderSet()
        self.remainder.rebuild(remainder_entries.items())
        self.cache = MatchCache(tracks, self._id_mapping, self.remainder)

        logger.info(
            f"Queued {len(self._queue)} searches, "
            f"{len(self.remainder)} stored mappings to look up "
            f"({self.remainder.page_count} pages)"
        )

    def enqueue_manual(self, input_id: str, query: str) -> None:
        """
        Queue a user-requested search for `input_id`.

        Raises:
            UnknownTrackError: If `input_id` is not part of the loaded playlist.
        """
        self.cache.track(input_id)
        self._queue.append(FetchTask(input_id, query, Manual()))

    # =========================================================================
    # Scheduling
    # =========================================================================

    @property
    def state(self) -> OrchestratorState:
        if self._queue or self._in_flight is not None or not self.remainder.exhausted:
            return OrchestratorState.DRAINING
        return OrchestratorState.IDLE

    @property
    def in_flight(self) -> CatalogRequest | None:
        return self._in_flight

    @property
    def queued(self) -> int:
        return len(self._queue)

    def next_request(self) -> SearchRequest | LookupRequest | None:
        """
        Take the next unit of work, or None if there is nothing to do or a
        request of this orchestrator is still outstanding.
        """
        if self._in_flight is not None:
            return None

        request: SearchRequest | LookupRequest | None = None
        if self._queue:
            task = self._queue.popleft()
            request = SearchRequest(task, generation=self.generation)
            logger.debug(f"Searching '{task.query}' for {task.input_id} ({task.initiator})")
        else:
            page = self.remainder.next_page()
            if page is not None:
                page_index = self.remainder.cursor - 1
                request = LookupRequest(
                    tuple(page.items()),
                    page_index=page_index,
                    generation=self.generation
                )
                logger.debug(f"Looking up remainder page {page_index} ({len(page)} tracks)")

        self._in_flight = request
        return request

    def _finish(self, request: CatalogRequest) -> None:
        if self._in_flight is request:
            self._in_flight = None

    # =========================================================================
    # Completions
    # =========================================================================

    def complete_search(self, request: SearchRequest, results: list[Track]) -> None:
        """
        Apply the results of a search.

        Raises:
            UnknownTrackError: If the task's input id is not loaded.
        """
        self._finish(request)
        task = request.task
        track = self.cache.track(task.input_id)

        if results:
            entries = self.cache.insert(task.input_id, results)
            best = entries[0]
            logger.info(format_matched_message(track.label, best.candidate.identifier or "", best.score))
            return

        initiator = task.initiator
        if initiator == Auto(1):
            adjusted = track.adjusted_query()
            if adjusted != task.query:
                logger.debug(f"No results for '{task.query}', retrying with '{adjusted}'")
                self._queue.append(FetchTask(task.input_id, adjusted, Auto(2)))
                return

        if isinstance(initiator, Auto):
            log_unmatched_track(logger, track.label, task.query, task.input_id)
        else:
            logger.info(f"No results for '{task.query}'")

    def complete_lookup(self, request: LookupRequest, results: list[Track | None]) -> None:
        """
        Apply the results of a bulk lookup.

        Raises:
            UnexpectedTrackError: If the response contains a track that was
                                  not requested in this page.
        """
        self._finish(request)
        owners = request.owners()

        for candidate in results:
            if candidate is None:
                # Spotify returns null for ids it no longer knows
                logger.warning(f"Spotify returned no data for a track of remainder page {request.page_index}")
                continue

            input_ids = owners.get(candidate.identifier or "")
            if input_ids is None:
                raise UnexpectedTrackError(
                    f"Bulk lookup returned a track that was not requested: {candidate.identifier}",
                    details={
                        "output_id": candidate.identifier,
                        "page_index": request.page_index,
                        "requested": request.output_ids,
                    }
                )

            for input_id in input_ids:
                self.cache.insert(input_id, [candidate])

    def fail(self, request: CatalogRequest) -> None:
        """
        Forget a failed request.

        Nothing is retried: the failed search is dropped and the remainder
        cursor stays past the failed page. Everything else is untouched.
        """
        self._finish(request)
