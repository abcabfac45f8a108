# tests/test_orchestrator.py
"""Test the fetch orchestrator"""

import logging

import pytest

from playlist_importer.core.exceptions import UnexpectedTrackError, UnknownTrackError
from playlist_importer.playlist.models import Track
from playlist_importer.reconcile.mapping import IdMappingStore
from playlist_importer.reconcile.orchestrator import FetchOrchestrator, OrchestratorState
from playlist_importer.reconcile.requests import Auto, LookupRequest, Manual, SearchRequest

from helpers import InMemoryMappingBackend, candidate


@pytest.fixture
def orchestrator(id_mapping):
    return FetchOrchestrator(id_mapping)


class TestSearchQueue:
    """Test search scheduling"""

    def test_queues_one_auto_search_per_track_in_order(self, orchestrator, track_a, track_b):
        orchestrator.start_session([track_a, track_b], generation=1)

        first = orchestrator.next_request()
        assert isinstance(first, SearchRequest)
        assert first.task.input_id == track_a.track_id
        assert first.task.query == "A X"
        assert first.task.initiator == Auto(1)
        assert first.generation == 1

        # One call at a time
        assert orchestrator.next_request() is None

        orchestrator.complete_search(first, [])
        second = orchestrator.next_request()
        assert second.task.input_id == track_b.track_id

    def test_idle_after_draining(self, orchestrator, track_a):
        orchestrator.start_session([track_a], generation=1)
        assert orchestrator.state is OrchestratorState.DRAINING

        request = orchestrator.next_request()
        assert orchestrator.state is OrchestratorState.DRAINING
        orchestrator.complete_search(request, [candidate("spotify:track:1", "A", "X", 200000)])

        assert orchestrator.state is OrchestratorState.IDLE
        assert orchestrator.next_request() is None

    def test_empty_playlist_is_idle(self, orchestrator):
        orchestrator.start_session([], generation=1)
        assert orchestrator.state is OrchestratorState.IDLE

    def test_manual_search_is_queued_last(self, orchestrator, track_a, track_b):
        orchestrator.start_session([track_a, track_b], generation=1)
        orchestrator.enqueue_manual(track_a.track_id, "custom query")

        queries = []
        while (request := orchestrator.next_request()) is not None:
            queries.append((request.task.query, request.task.initiator))
            orchestrator.complete_search(request, [candidate("spotify:track:1", "A", "X", 1)])

        assert queries == [("A X", Auto(1)), ("B Y", Auto(1)), ("custom query", Manual())]

    def test_manual_search_for_unknown_track(self, orchestrator, track_a):
        orchestrator.start_session([track_a], generation=1)
        with pytest.raises(UnknownTrackError):
            orchestrator.enqueue_manual("nope", "q")

    def test_failed_search_is_not_retried(self, orchestrator, track_a, track_b):
        orchestrator.start_session([track_a, track_b], generation=1)
        request = orchestrator.next_request()
        orchestrator.fail(request)

        following = orchestrator.next_request()
        assert following.task.input_id == track_b.track_id


class TestRetry:
    """Test the single relaxed retry"""

    def test_exactly_one_relaxed_retry(self, orchestrator):
        track = Track(artist="Artist [Top]", title="Title (feat. Somebody)", duration=1000)
        orchestrator.start_session([track], generation=1)

        first = orchestrator.next_request()
        orchestrator.complete_search(first, [])

        retry = orchestrator.next_request()
        assert retry.task.query == "Artist Title"
        assert retry.task.initiator == Auto(2)

        orchestrator.complete_search(retry, [])
        assert orchestrator.next_request() is None
        assert orchestrator.state is OrchestratorState.IDLE

    def test_retry_goes_to_the_back(self, orchestrator, track_b):
        track = Track(artist="Artist", title="Title (Live)", duration=1000)
        orchestrator.start_session([track, track_b], generation=1)

        orchestrator.complete_search(orchestrator.next_request(), [])

        assert orchestrator.next_request().task.input_id == track_b.track_id

    def test_no_retry_when_adjusted_query_is_identical(self, orchestrator, track_a, caplog):
        orchestrator.start_session([track_a], generation=1)

        with caplog.at_level(logging.WARNING):
            orchestrator.complete_search(orchestrator.next_request(), [])

        assert orchestrator.next_request() is None
        unmatched = [r for r in caplog.records if hasattr(r, "unmatched_track_query")]
        assert len(unmatched) == 1
        assert unmatched[0].unmatched_track_id == track_a.track_id

    def test_manual_search_is_never_retried(self, orchestrator):
        track = Track(artist="Artist", title="Title (Live)", duration=1000)
        orchestrator.start_session([track], generation=1)
        orchestrator.complete_search(orchestrator.next_request(), [candidate("spotify:track:1", "Artist", "Title", 1000)])

        orchestrator.enqueue_manual(track.track_id, "Artist Title (Live)")
        orchestrator.complete_search(orchestrator.next_request(), [])

        assert orchestrator.next_request() is None


class TestBulkLookup:
    """Test remainder pages"""

    def _session(self, count):
        tracks = [Track(artist=f"Artist {i}", title=f"Title {i}", duration=1000 + i) for i in range(count)]
        backend = InMemoryMappingBackend({track.track_id: f"spotify:track:{i}" for i, track in enumerate(tracks)})
        orchestrator = FetchOrchestrator(IdMappingStore(backend))
        orchestrator.start_session(tracks, generation=1)
        return orchestrator, tracks

    def test_lookups_start_after_searches(self):
        orchestrator, tracks = self._session(2)

        searches = 0
        while isinstance(request := orchestrator.next_request(), SearchRequest):
            searches += 1
            orchestrator.complete_search(request, [])

        assert searches == 2
        assert isinstance(request, LookupRequest)
        assert request.output_ids == ["spotify:track:0", "spotify:track:1"]

    def test_120_entries_give_three_pages(self):
        orchestrator, tracks = self._session(120)

        pages = []
        while (request := orchestrator.next_request()) is not None:
            if isinstance(request, SearchRequest):
                orchestrator.complete_search(request, [])
                continue
            pages.append(request)
            orchestrator.complete_lookup(request, [
                candidate(uri, "x", "y", 1) for uri in request.output_ids
            ])

        assert [len(page.output_ids) for page in pages] == [50, 50, 20]
        assert [page.page_index for page in pages] == [0, 1, 2]
        requested = [uri for page in pages for uri in page.output_ids]
        assert len(requested) == len(set(requested)) == 120
        assert orchestrator.state is OrchestratorState.IDLE
        assert len(orchestrator.remainder) == 0

    def test_search_hit_avoids_lookup(self):
        orchestrator, tracks = self._session(2)

        request = orchestrator.next_request()
        orchestrator.complete_search(request, [candidate("spotify:track:0", "Artist 0", "Title 0", 1000)])
        orchestrator.complete_search(orchestrator.next_request(), [])

        lookup = orchestrator.next_request()
        assert lookup.output_ids == ["spotify:track:1"]

    def test_lookup_result_is_inserted(self):
        orchestrator, tracks = self._session(1)
        orchestrator.complete_search(orchestrator.next_request(), [])

        lookup = orchestrator.next_request()
        stored = candidate("spotify:track:0", "Artist 0", "Title 0", 1000)
        orchestrator.complete_lookup(lookup, [stored])

        assert orchestrator.cache.matches(tracks[0].track_id)[0].candidate == stored

    def test_shared_output_id_is_requested_once(self):
        tracks = [Track(title="one", duration=1), Track(title="two", duration=2)]
        backend = InMemoryMappingBackend({track.track_id: "spotify:track:same" for track in tracks})
        orchestrator = FetchOrchestrator(IdMappingStore(backend))
        orchestrator.start_session(tracks, generation=1)
        for _ in tracks:
            orchestrator.complete_search(orchestrator.next_request(), [])

        lookup = orchestrator.next_request()
        assert lookup.output_ids == ["spotify:track:same"]

        orchestrator.complete_lookup(lookup, [candidate("spotify:track:same", "x", "y", 1)])
        for track in tracks:
            assert len(orchestrator.cache.matches(track.track_id)) == 1

    def test_unrequested_track_is_fatal(self):
        orchestrator, tracks = self._session(1)
        orchestrator.complete_search(orchestrator.next_request(), [])

        lookup = orchestrator.next_request()
        with pytest.raises(UnexpectedTrackError):
            orchestrator.complete_lookup(lookup, [candidate("spotify:track:other", "x", "y", 1)])

    def test_unknown_catalog_ids_are_skipped(self):
        orchestrator, tracks = self._session(1)
        orchestrator.complete_search(orchestrator.next_request(), [])

        lookup = orchestrator.next_request()
        orchestrator.complete_lookup(lookup, [None])

        assert orchestrator.cache.matches(tracks[0].track_id) == ()
        assert orchestrator.state is OrchestratorState.IDLE


class TestEndToEnd:
    """Two-track scenario"""

    def test_default_mapping_is_set_per_completed_search(self, orchestrator, id_mapping, track_a, track_b):
        orchestrator.start_session([track_a, track_b], generation=1)

        first = orchestrator.next_request()
        assert orchestrator.next_request() is None

        orchestrator.complete_search(first, [candidate("spotify:track:ax", "A", "X", 200000)])

        assert id_mapping.get(track_a.track_id) == "spotify:track:ax"
        assert id_mapping.get(track_b.track_id) is None

        second = orchestrator.next_request()
        orchestrator.complete_search(second, [candidate("spotify:track:by", "B", "Y", 180000)])
        assert id_mapping.get(track_b.track_id) == "spotify:track:by"

    def test_new_session_discards_queue(self, orchestrator, track_a, track_b):
        orchestrator.start_session([track_a, track_b], generation=1)
        orchestrator.next_request()

        orchestrator.start_session([track_b], generation=2)
        request = orchestrator.next_request()

        assert request.task.input_id == track_b.track_id
        assert request.generation == 2
        orchestrator.complete_search(request, [])
        assert orchestrator.next_request() is None
