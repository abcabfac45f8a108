"""
Spotify user session.

A Session is the (user id, access token, expiration) triple every catalog
call runs under. It is obtained once per run by connect():

    1. If the database holds a session that has not expired yet, reuse it.
    2. Otherwise run spotipy's OAuth authorization code flow (opens the
       browser, listens on the configured redirect URI), resolve the user
       id with the current-user endpoint, and store the new session.

Tokens are never refreshed: once a session expires the user has to run
the command again. The remaining time is only displayed.

Usage:
    from playlist_importer.spotify.auth import connect

    session = connect(config, database)
    print(f"Your Spotify session will expire in {session.minutes_remaining} minutes")
"""

import time
from dataclasses import dataclass

import requests
import spotipy
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from playlist_importer.core.config import Config
from playlist_importer.core.database import Database
from playlist_importer.core.exceptions import SpotifyError
from playlist_importer.core.logger import get_logger


logger = get_logger(__name__)

SCOPES = "playlist-read-private playlist-modify-private playlist-modify-public"

# Sessions closer than this to expiring are not reused
MIN_REMAINING_SECONDS = 60


@dataclass(frozen=True)
class Session:
    """
    Attributes:
        user_id: Spotify user id.
        access_token: OAuth bearer token.
        expiration_ts: Absolute expiration time (Unix timestamp, seconds).
    """

    user_id: str
    access_token: str
    expiration_ts: float

    def expiration_timeout(self, now: float | None = None) -> float:
        """Seconds until the session expires, 0 if it already has."""
        now = time.time() if now is None else now
        return max(0.0, self.expiration_ts - now)

    @property
    def minutes_remaining(self) -> int:
        return int(self.expiration_timeout() // 60)

    @property
    def expired(self) -> bool:
        return self.expiration_timeout() <= 0


def _authorize(config: Config) -> Session:
    spotify_config = config.spotify
    auth_manager = SpotifyOAuth(
        client_id=spotify_config.client_id,
        client_secret=spotify_config.client_secret,
        redirect_uri=spotify_config.redirect_uri,
        scope=SCOPES,
        cache_handler=MemoryCacheHandler(),
        open_browser=True,
        requests_timeout=spotify_config.requests_timeout
    )

    try:
        access_token = auth_manager.get_access_token(as_dict=False)
        token_info = auth_manager.cache_handler.get_cached_token() or {}
        spotify = spotipy.Spotify(auth=access_token, requests_timeout=spotify_config.requests_timeout)
        user_id = spotify.current_user()["id"]
    except (SpotifyOauthError, spotipy.SpotifyException) as e:
        raise SpotifyError(
            f"Spotify authentication failed: {e}",
            details={"original_error": str(e)},
            is_auth_error=True
        ) from e
    except requests.RequestException as e:
        raise SpotifyError(
            f"Network error during Spotify authentication: {e}",
            details={"original_error": str(e)}
        ) from e

    expiration_ts = float(token_info.get("expires_at", time.time() + 3600))
    return Session(user_id=user_id, access_token=access_token, expiration_ts=expiration_ts)


def connect(config: Config, database: Database) -> Session:
    """
    Return a usable Spotify session.

    Args:
        config: Loaded application configuration.
        database: Store used to remember the session between runs.

    Raises:
        SpotifyError: If authorization fails.
        DatabaseError: If the session cannot be stored.
    """
    stored = database.load_session()
    if stored is not None:
        session = Session(**stored)
        if session.expiration_timeout() > MIN_REMAINING_SECONDS:
            logger.debug(f"Reusing stored session of {session.user_id}")
            return session
        logger.info("Stored Spotify session expired, authorizing again")

    session = _authorize(config)
    database.save_session(session.user_id, session.access_token, session.expiration_ts)
    logger.info(f"Connected to Spotify as {session.user_id}")
    return session
