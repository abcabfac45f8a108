"""
Spotify Web API client singleton for spotify-playlist-importer.

This module provides a singleton wrapper around the spotipy library,
ensuring that only one Spotify client (and one bearer token) is used
throughout the application lifetime.

Singleton Pattern:
    SpotifyClient must be initialized once with init(), and subsequent
    calls to SpotifyClient() return the same instance. Calling init()
    twice raises an error.

Authentication:
    The client does not authenticate by itself. It is given the access
    token and user id of a Session (see spotify.auth.connect()) and uses
    the token as a bearer credential until it expires. Tokens are never
    refreshed here.

Retries:
    spotipy's automatic retries are disabled. Every method performs one
    HTTP request; failures surface as SpotifyError and the caller decides
    what to do. The request timeout comes from config.yaml.

Usage:
    from playlist_importer.spotify.client import SpotifyClient

    SpotifyClient.init(access_token=session.access_token, user_id=session.user_id)

    client = SpotifyClient()
    candidates = client.search_tracks("Queen Bohemian Rhapsody")
"""

from typing import Any, Callable

import requests
import spotipy

from playlist_importer.core.exceptions import SpotifyError
from playlist_importer.core.logger import get_logger
from playlist_importer.playlist.models import Track
from playlist_importer.spotify.models import SpotifyPlaylist, track_from_spotify_api
from playlist_importer.utils import BATCH_SIZE


logger = get_logger(__name__)

PLAYLISTS_LIMIT = 50


class SpotifyClientMeta(type):
    """
    Metaclass implementing the singleton pattern for SpotifyClient.

    Attributes:
        _instance: The singleton SpotifyClient instance, or None.
        _initialized: Flag indicating whether init() has been called.
    """

    _instance: "SpotifyClient | None" = None
    _initialized: bool = False

    def __call__(cls) -> "SpotifyClient":
        """
        Get the SpotifyClient singleton instance.

        Raises:
            SpotifyError: If init() has not been called yet.
        """
        if cls._instance is None:
            raise SpotifyError(
                "SpotifyClient not initialized. Call SpotifyClient.init("
                "access_token, user_id) first.",
                is_auth_error=True
            )
        return cls._instance

    def init(
        cls,
        access_token: str,
        user_id: str,
        requests_timeout: float = 10.0
    ) -> "SpotifyClient":
        """
        Initialize the SpotifyClient singleton.

        Args:
            access_token: OAuth bearer token of the current session.
            user_id: Spotify user id the token belongs to. Used to create
                     playlists and to filter the writable ones.
            requests_timeout: Seconds before a request is abandoned.

        Returns:
            The initialized SpotifyClient singleton instance.

        Raises:
            SpotifyError: If init() has already been called.
        """
        if cls._initialized:
            raise SpotifyError(
                "SpotifyClient.init() has already been called. "
                "Use SpotifyClient() to get the existing instance.",
                is_auth_error=True
            )

        spotify_instance = spotipy.Spotify(
            auth=access_token,
            requests_timeout=requests_timeout,
            retries=0,
            status_retries=0
        )

        instance = super().__call__(spotify_instance, user_id)
        cls._instance = instance
        cls._initialized = True
        return instance

    def is_initialized(cls) -> bool:
        return cls._initialized

    def reset(cls) -> None:
        """
        Reset the singleton state (for testing only).

        Clears the singleton instance, allowing init() to be called again.
        """
        cls._instance = None
        cls._initialized = False


class SpotifyClient(metaclass=SpotifyClientMeta):
    """
    Singleton Spotify API client.

    Wraps spotipy.Spotify and exposes the five catalog operations the
    importer needs. Every spotipy or transport failure is converted to
    SpotifyError; a 429 sets is_rate_limit, a 401 sets is_auth_error
    (usually an expired session).

    Attributes:
        _spotify: The underlying spotipy.Spotify instance.
        user_id: Spotify user id of the session.
    """

    def __init__(self, spotify_instance: spotipy.Spotify, user_id: str) -> None:
        """
        Note:
            Called by the metaclass init() method. Use SpotifyClient.init().
        """
        self._spotify = spotify_instance
        self.user_id = user_id

    def _request(self, operation: str, call: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run one spotipy call, converting failures to SpotifyError.

        Args:
            operation: Human-readable operation name used in the message.
            call: The spotipy method.
        """
        try:
            return call(*args, **kwargs)
        except spotipy.SpotifyException as e:
            if e.http_status == 429:
                raise SpotifyError(
                    f"Rate limited during {operation}",
                    details={"operation": operation, "http_status": 429},
                    is_rate_limit=True
                ) from e
            raise SpotifyError(
                f"Spotify API error during {operation}: {e.msg}",
                details={"operation": operation, "http_status": e.http_status, "original_error": str(e)},
                is_auth_error=e.http_status == 401
            ) from e
        except requests.RequestException as e:
            raise SpotifyError(
                f"Network error during {operation}: {e}",
                details={"operation": operation, "original_error": str(e)}
            ) from e

    # =========================================================================
    # Track Operations
    # =========================================================================

    def search_tracks(self, query: str) -> list[Track]:
        """
        Search the catalog for tracks.

        Args:
            query: Free text, e.g. "Queen Bohemian Rhapsody".

        Returns:
            Candidate tracks in Spotify's relevance order (may be empty).

        Raises:
            SpotifyError: On any API or network failure.
        """
        result = self._request("search track", self._spotify.search, q=query, type="track")
        items = (result or {}).get("tracks", {}).get("items", [])
        return [track_from_spotify_api(item) for item in items if item]

    def tracks(self, uris: list[str]) -> list[Track | None]:
        """
        Fetch several tracks at once.

        Args:
            uris: Up to BATCH_SIZE Spotify track URIs or IDs.

        Returns:
            One entry per requested id, in order. Unknown ids give None.

        Raises:
            ValueError: If more than BATCH_SIZE ids are given.
            SpotifyError: On any API or network failure.
        """
        if len(uris) > BATCH_SIZE:
            raise ValueError(f"At most {BATCH_SIZE} tracks per request, got {len(uris)}")
        if not uris:
            return []
        result = self._request("get tracks", self._spotify.tracks, uris)
        return [
            track_from_spotify_api(item) if item else None
            for item in (result or {}).get("tracks", [])
        ]

    # =========================================================================
    # Playlist Operations
    # =========================================================================

    def user_playlists(self) -> list[SpotifyPlaylist]:
        """
        List the playlists of the user that tracks can be added to.

        Only the first PLAYLISTS_LIMIT playlists are requested. Playlists
        the user follows but neither owns nor collaborates on are dropped.

        Raises:
            SpotifyError: On any API or network failure.
        """
        result = self._request(
            "get playlists",
            self._spotify.user_playlists,
            self.user_id,
            limit=PLAYLISTS_LIMIT
        )
        playlists = [
            SpotifyPlaylist.from_spotify_api(item)
            for item in (result or {}).get("items", [])
            if item
        ]
        return [playlist for playlist in playlists if playlist.is_writable_by(self.user_id)]

    def create_playlist(self, name: str) -> SpotifyPlaylist:
        """
        Create a private playlist owned by the user.

        Raises:
            SpotifyError: On any API or network failure.
        """
        result = self._request(
            "create playlist",
            self._spotify.user_playlist_create,
            self.user_id,
            name,
            public=False
        )
        return SpotifyPlaylist.from_spotify_api(result)

    def add_items(self, playlist_id: str, uris: list[str]) -> None:
        """
        Append tracks to a playlist.

        Args:
            playlist_id: Spotify playlist ID.
            uris: Up to BATCH_SIZE Spotify track URIs.

        Raises:
            ValueError: If more than BATCH_SIZE URIs are given.
            SpotifyError: On any API or network failure.
        """
        if len(uris) > BATCH_SIZE:
            raise ValueError(f"At most {BATCH_SIZE} tracks per request, got {len(uris)}")
        self._request("add to playlist", self._spotify.playlist_add_items, playlist_id, uris)
