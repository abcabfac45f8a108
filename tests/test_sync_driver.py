# tests/test_sync_driver.py
"""Test playlist import and unmatched export"""

import pytest

from playlist_importer.playlist.models import Track
from playlist_importer.playlist.xspf import parse_playlist
from playlist_importer.reconcile.requests import AddItemsRequest, CreatePlaylistRequest
from playlist_importer.sync.driver import PlaylistSyncDriver


@pytest.fixture
def driver(id_mapping):
    return PlaylistSyncDriver(id_mapping)


def _tracks(count):
    return [Track(title=f"Title {i}", duration=i + 1) for i in range(count)]


class TestExportUnmatched:
    """Test export_unmatched()"""

    def test_exports_only_unmatched_tracks(self, driver, id_mapping, track_a, track_b):
        id_mapping.set(track_a.track_id, "spotify:track:ax")

        document = driver.export_unmatched([track_a, track_b]).decode("utf-8")

        assert document == (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<playlist version="1" xmlns="http://xspf.org/ns/0/">\n'
            "  <trackList>\n"
            "    <track>\n"
            "      <title>Y</title>\n"
            "      <creator>B</creator>\n"
            "      <duration>180000</duration>\n"
            "    </track>\n"
            "  </trackList>\n"
            "</playlist>"
        )

    def test_keeps_input_order(self, driver):
        tracks = _tracks(3)
        exported = parse_playlist(driver.export_unmatched(tracks))
        assert list(exported.tracks) == tracks

    def test_nothing_unmatched(self, driver, id_mapping, track_a):
        id_mapping.set(track_a.track_id, "spotify:track:ax")
        assert parse_playlist(driver.export_unmatched([track_a])).tracks == ()


class TestImport:
    """Test paginated import"""

    def _run(self, driver, generation=0):
        requests = []
        while (request := driver.next_request(generation)) is not None:
            requests.append(request)
            driver.complete_page(request)
        return requests

    def test_pages_of_fifty(self, driver, id_mapping):
        tracks = _tracks(120)
        for i, track in enumerate(tracks):
            id_mapping.set(track.track_id, f"spotify:track:{i}")

        driver.start_import("playlist", tracks)
        requests = self._run(driver)

        assert [len(request.uris) for request in requests] == [50, 50, 20]
        assert requests[0].uris[0] == "spotify:track:0"
        assert all(request.playlist_id == "playlist" for request in requests)
        assert driver.done
        assert not driver.active

    def test_pages_are_filtered_to_mapped_tracks(self, driver, id_mapping):
        tracks = _tracks(60)
        id_mapping.set(tracks[0].track_id, "spotify:track:first")
        id_mapping.set(tracks[55].track_id, "spotify:track:last")

        driver.start_import("playlist", tracks)
        requests = self._run(driver)

        assert [request.uris for request in requests] == [("spotify:track:first",), ("spotify:track:last",)]
        assert [request.page_index for request in requests] == [0, 1]

    def test_empty_pages_are_skipped(self, driver, id_mapping):
        tracks = _tracks(120)
        id_mapping.set(tracks[110].track_id, "spotify:track:only")

        driver.start_import("playlist", tracks)
        requests = self._run(driver)

        assert len(requests) == 1
        assert requests[0].page_index == 2
        assert driver.done

    def test_nothing_to_import_finishes_at_once(self, driver):
        driver.start_import("playlist", _tracks(3))
        assert driver.next_request() is None
        assert driver.done

    def test_one_page_in_flight(self, driver, id_mapping):
        tracks = _tracks(60)
        for track in tracks:
            id_mapping.set(track.track_id, "spotify:track:x")

        driver.start_import("playlist", tracks)
        first = driver.next_request()
        assert driver.next_request() is None
        assert not driver.done

        driver.complete_page(first)
        assert driver.next_request().page_index == 1

    def test_mapping_added_during_import_only_reaches_later_pages(self, driver, id_mapping):
        tracks = _tracks(60)
        driver.start_import("playlist", tracks)
        id_mapping.set(tracks[1].track_id, "spotify:track:early")

        first = driver.next_request()
        assert first.uris == ("spotify:track:early",)

        id_mapping.set(tracks[2].track_id, "spotify:track:too-late")
        id_mapping.set(tracks[51].track_id, "spotify:track:in-time")
        driver.complete_page(first)

        second = driver.next_request()
        assert second.uris == ("spotify:track:in-time",)

    def test_failure_stops_import(self, driver, id_mapping):
        tracks = _tracks(60)
        for track in tracks:
            id_mapping.set(track.track_id, "spotify:track:x")

        driver.start_import("playlist", tracks)
        driver.fail(driver.next_request())

        assert not driver.active
        assert not driver.done
        assert driver.next_request() is None

    def test_restart_begins_at_first_page(self, driver, id_mapping):
        tracks = _tracks(60)
        for track in tracks:
            id_mapping.set(track.track_id, "spotify:track:x")

        driver.start_import("playlist", tracks)
        driver.fail(driver.next_request())
        driver.start_import("playlist", tracks)

        assert driver.next_request().page_index == 0

    def test_requests_carry_generation(self, driver, id_mapping, track_a):
        id_mapping.set(track_a.track_id, "spotify:track:ax")
        driver.start_import("playlist", [track_a])
        request = driver.next_request(generation=7)
        assert isinstance(request, AddItemsRequest)
        assert request.generation == 7


class TestCreateRemotePlaylist:
    def test_builds_request(self, driver):
        request = driver.create_remote_playlist("Mixtape")
        assert isinstance(request, CreatePlaylistRequest)
        assert request.name == "Mixtape"
        assert request.operation == "create playlist"
