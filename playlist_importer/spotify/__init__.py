"""
Spotify Web API integration for spotify-playlist-importer.

    - client: SpotifyClient singleton (search, bulk lookup, playlists)
    - models: conversion of API objects
    - auth: user session (OAuth, expiration)
"""

from playlist_importer.spotify.auth import Session, connect
from playlist_importer.spotify.client import SpotifyClient
from playlist_importer.spotify.models import SpotifyPlaylist, track_from_spotify_api

__all__ = [
    "SpotifyClient",
    "SpotifyPlaylist",
    "track_from_spotify_api",
    "Session",
    "connect",
]
