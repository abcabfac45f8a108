"""
Core module for spotify-playlist-importer.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - database: Thread-safe SQLite store for the id mapping and session
    - logger: Logging system with multiple outputs

Usage:
    from playlist_importer.core import (
        Config, load_config,
        Database,
        setup_logging, get_logger,
        ImporterError, ConfigError, DatabaseError
    )
"""

from playlist_importer.core.config import (
    Config,
    ImportConfig,
    SpotifyConfig,
    StorageConfig,
    load_config,
)
from playlist_importer.core.database import Database
from playlist_importer.core.exceptions import (
    ConfigError,
    DatabaseError,
    ImporterError,
    PlaylistFormatError,
    ReconciliationError,
    SpotifyError,
    UnexpectedTrackError,
    UnknownTrackError,
)
from playlist_importer.core.logger import (
    get_logger,
    log_unmatched_track,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "StorageConfig",
    "ImportConfig",
    "load_config",
    # Database
    "Database",
    # Exceptions
    "ImporterError",
    "ConfigError",
    "DatabaseError",
    "SpotifyError",
    "PlaylistFormatError",
    "ReconciliationError",
    "UnknownTrackError",
    "UnexpectedTrackError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_unmatched_track",
    "shutdown_logging",
]
