"""
Exception classes for spotify-playlist-importer.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide clear, actionable error messages
and to distinguish between different failure modes.

Exception Hierarchy:
    ImporterError (base)
        ConfigError - Configuration file issues
        DatabaseError - SQLite mapping store issues
        SpotifyError - Spotify Web API issues (recoverable, shown to the user)
        PlaylistFormatError - Malformed XSPF input file
        ReconciliationError - Internal inconsistencies while matching (defects)
            UnknownTrackError - Result routed to an input track that is not loaded
            UnexpectedTrackError - Bulk lookup returned a track that was not requested
"""


class ImporterError(Exception):
    """
    Base exception for all spotify-playlist-importer errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all importer errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., track ids, queries).

    Example:
        try:
            # some operation
        except ImporterError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'input_id': Identity of the input track involved
                     - 'query': Search text that was sent to Spotify
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(ImporterError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required fields missing (client_id, client_secret)
        - Invalid field values (e.g., negative tick interval)
    """
    pass


class DatabaseError(ImporterError):
    """
    Raised when there's an issue with the SQLite database.

    This is a CRITICAL error that should stop program execution.
    The database holds the id mapping chosen by the user, so failing
    to persist it means edits could silently be lost.

    Common causes:
        - database.db is corrupted or from an incompatible version
        - Permission denied when reading/writing
        - Disk full
    """
    pass


class SpotifyError(ImporterError):
    """
    Raised when there's an issue with the Spotify Web API.

    Catalog failures are NON-CRITICAL: the import session shows a one-line
    description of the failed operation and leaves its queues untouched,
    so the user can simply trigger the action again.

    Common causes:
        - Expired access token (CRITICAL for the session, never refreshed)
        - Rate limiting
        - Playlist not found or not writable
        - Network connectivity issues

    Attributes:
        is_auth_error: True if this is an authentication error.
        is_rate_limit: True if this is a rate limit error.

    Example:
        raise SpotifyError(
            "Failed to search tracks: 503 Service Unavailable",
            details={'query': 'Artist Title', 'http_status': 503}
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        """
        Initialize Spotify error with additional flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True if this is an authentication failure.
            is_rate_limit: Set to True if this is a rate limit error.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class PlaylistFormatError(ImporterError):
    """
    Raised when an input playlist file cannot be parsed.

    The load attempt is aborted as a whole; no partially parsed
    track list is ever handed to the matching engine.

    Common causes:
        - File is not well-formed XML
        - Document has no <trackList> element
        - <trackNum> or <duration> is not an integer
    """
    pass


class ReconciliationError(ImporterError):
    """
    Raised when the matching engine detects an internal inconsistency.

    These errors indicate a bug (or a catalog response that does not
    correspond to the request that was sent). They are never turned
    into a user-facing message and must propagate.
    """
    pass


class UnknownTrackError(ReconciliationError):
    """Raised when results are routed to an input id that is not loaded."""
    pass


class UnexpectedTrackError(ReconciliationError):
    """Raised when a bulk lookup returns a track id that was not requested."""
    pass
