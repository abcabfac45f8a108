"""
Conversion of Spotify Web API objects.

Spotify track objects become playlist Track instances (the candidate side
of a match), so that input tracks and candidates can be scored and
serialized the same way. Playlist objects become SpotifyPlaylist.

Usage:
    from playlist_importer.spotify.models import SpotifyPlaylist, track_from_spotify_api

    candidate = track_from_spotify_api(spotify.track("4cOdK2wGLETKBW3PvgPWqT"))
    candidate.identifier  # "spotify:track:4cOdK2wGLETKBW3PvgPWqT"
"""

from dataclasses import dataclass
from typing import Any

from playlist_importer.playlist.models import Track


def track_from_spotify_api(track_data: dict[str, Any]) -> Track:
    """
    Create a candidate Track from a Spotify track object.

    Args:
        track_data: A track object as returned by /tracks or /search.

    Returns:
        Track with identifier set to the Spotify URI, artists joined by
        ", ", and album, track number and duration taken from the API.
    """
    artists = ", ".join(artist["name"] for artist in track_data.get("artists", []))
    album = track_data.get("album") or {}
    return Track(
        identifier=track_data["uri"],
        title=track_data.get("name"),
        artist=artists,
        album=album.get("name"),
        track_number=track_data.get("track_number"),
        duration=track_data.get("duration_ms"),
    )


@dataclass(frozen=True)
class SpotifyPlaylist:
    """
    A playlist of the current user's library.

    Attributes:
        playlist_id: Spotify playlist ID (e.g., "37i9dQZF1DXcBWIGoYBM5M").
        name: Playlist name.
        owner_id: Spotify user id of the owner.
        collaborative: Whether other users may add tracks.
    """

    playlist_id: str
    name: str
    owner_id: str
    collaborative: bool = False

    @classmethod
    def from_spotify_api(cls, playlist_data: dict[str, Any]) -> "SpotifyPlaylist":
        return cls(
            playlist_id=playlist_data["id"],
            name=playlist_data.get("name") or "",
            owner_id=(playlist_data.get("owner") or {}).get("id", ""),
            collaborative=bool(playlist_data.get("collaborative", False)),
        )

    def is_writable_by(self, user_id: str) -> bool:
        """True if `user_id` can add tracks: they own it or it is collaborative."""
        return self.collaborative or self.owner_id == user_id
