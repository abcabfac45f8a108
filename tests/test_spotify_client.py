# tests/test_spotify_client.py
"""Test the Spotify client singleton and API conversions"""

from unittest.mock import patch

import pytest
import requests
import spotipy

from playlist_importer.core.exceptions import SpotifyError
from playlist_importer.playlist.models import Track
from playlist_importer.spotify.client import SpotifyClient
from playlist_importer.spotify.models import SpotifyPlaylist, track_from_spotify_api


def _track_data(track_id, name="Song", artists=("Artist",), album="Album", duration_ms=200000):
    return {
        "id": track_id,
        "uri": f"spotify:track:{track_id}",
        "name": name,
        "artists": [{"id": f"artist-{i}", "name": artist} for i, artist in enumerate(artists)],
        "album": {"id": "album", "name": album},
        "track_number": 4,
        "duration_ms": duration_ms,
    }


@pytest.fixture
def spotify():
    SpotifyClient.reset()
    with patch("playlist_importer.spotify.client.spotipy.Spotify") as mock_spotify:
        instance = mock_spotify.return_value
        SpotifyClient.init(access_token="token", user_id="me", requests_timeout=5)
        yield instance, mock_spotify
    SpotifyClient.reset()


class TestTrackFromSpotifyApi:
    """Test track_from_spotify_api()"""

    def test_conversion(self):
        track = track_from_spotify_api(_track_data("abc", artists=("Simon", "Garfunkel")))
        assert track == Track(
            identifier="spotify:track:abc",
            title="Song",
            artist="Simon, Garfunkel",
            album="Album",
            track_number=4,
            duration=200000,
        )
        assert track.track_id == "spotify:track:abc"


class TestSpotifyPlaylist:
    """Test SpotifyPlaylist"""

    def test_writable(self):
        assert SpotifyPlaylist("p", "n", "me").is_writable_by("me")
        assert SpotifyPlaylist("p", "n", "other", collaborative=True).is_writable_by("me")
        assert not SpotifyPlaylist("p", "n", "other").is_writable_by("me")


class TestSingleton:
    """Test the singleton lifecycle"""

    def test_not_initialized(self):
        SpotifyClient.reset()
        assert not SpotifyClient.is_initialized()
        with pytest.raises(SpotifyError):
            SpotifyClient()

    def test_init_once(self, spotify):
        _, mock_spotify = spotify
        assert SpotifyClient() is SpotifyClient()
        assert SpotifyClient().user_id == "me"
        mock_spotify.assert_called_once_with(auth="token", requests_timeout=5, retries=0, status_retries=0)

        with pytest.raises(SpotifyError):
            SpotifyClient.init(access_token="token", user_id="me")


class TestCatalogOperations:
    """Test the catalog calls"""

    def test_search_tracks(self, spotify):
        instance, _ = spotify
        instance.search.return_value = {"tracks": {"items": [_track_data("a"), None, _track_data("b")]}}

        results = SpotifyClient().search_tracks("Artist Song")

        instance.search.assert_called_once_with(q="Artist Song", type="track")
        assert [track.identifier for track in results] == ["spotify:track:a", "spotify:track:b"]

    def test_tracks_keeps_missing_entries(self, spotify):
        instance, _ = spotify
        instance.tracks.return_value = {"tracks": [_track_data("a"), None]}

        results = SpotifyClient().tracks(["spotify:track:a", "spotify:track:gone"])

        assert results[0].identifier == "spotify:track:a"
        assert results[1] is None

    def test_tracks_limit(self, spotify):
        with pytest.raises(ValueError):
            SpotifyClient().tracks([f"spotify:track:{i}" for i in range(51)])

    def test_user_playlists_are_filtered(self, spotify):
        instance, _ = spotify
        instance.user_playlists.return_value = {"items": [
            {"id": "mine", "name": "Mine", "owner": {"id": "me"}, "collaborative": False},
            {"id": "shared", "name": "Shared", "owner": {"id": "friend"}, "collaborative": True},
            {"id": "followed", "name": "Followed", "owner": {"id": "label"}, "collaborative": False},
        ]}

        playlists = SpotifyClient().user_playlists()

        instance.user_playlists.assert_called_once_with("me", limit=50)
        assert [playlist.playlist_id for playlist in playlists] == ["mine", "shared"]

    def test_create_playlist_is_private(self, spotify):
        instance, _ = spotify
        instance.user_playlist_create.return_value = {
            "id": "new", "name": "Mixtape", "owner": {"id": "me"}, "collaborative": False
        }

        playlist = SpotifyClient().create_playlist("Mixtape")

        instance.user_playlist_create.assert_called_once_with("me", "Mixtape", public=False)
        assert playlist == SpotifyPlaylist("new", "Mixtape", "me")

    def test_add_items(self, spotify):
        instance, _ = spotify
        SpotifyClient().add_items("playlist", ["spotify:track:a"])
        instance.playlist_add_items.assert_called_once_with("playlist", ["spotify:track:a"])


class TestErrors:
    """Test conversion of failures to SpotifyError"""

    def test_rate_limit(self, spotify):
        instance, _ = spotify
        instance.search.side_effect = spotipy.SpotifyException(429, -1, "too many requests")

        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient().search_tracks("q")
        assert exc_info.value.is_rate_limit

    def test_expired_token(self, spotify):
        instance, _ = spotify
        instance.tracks.side_effect = spotipy.SpotifyException(401, -1, "The access token expired")

        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient().tracks(["spotify:track:a"])
        assert exc_info.value.is_auth_error
        assert exc_info.value.details["http_status"] == 401

    def test_transport_error(self, spotify):
        instance, _ = spotify
        instance.playlist_add_items.side_effect = requests.ConnectionError("offline")

        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient().add_items("playlist", ["spotify:track:a"])
        assert not exc_info.value.is_auth_error
        assert exc_info.value.details["operation"] == "add to playlist"
