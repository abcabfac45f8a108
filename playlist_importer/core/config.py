"""
Configuration management for spotify-playlist-importer.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Spotify application credentials (client_id, client_secret)
    - OAuth redirect URI and HTTP request timeout
    - Storage directory for the mapping database and log files
    - Interval of the periodic tick that re-enters the matching engine

Credentials may also be supplied through environment variables (or a
.env file in the working directory), which take precedence over the file:
    SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, SPOTIFY_REDIRECT_URI

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"
      redirect_uri: "http://127.0.0.1:8888/callback"
      requests_timeout: 10

    storage:
      directory: "~/.spotify-playlist-importer"

    import:
      tick_seconds: 60
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from playlist_importer.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_REQUESTS_TIMEOUT = 10.0
DEFAULT_STORAGE_DIRECTORY = "~/.spotify-playlist-importer"
DEFAULT_TICK_SECONDS = 60.0

# Environment variables overriding the spotify section
ENV_OVERRIDES = {
    "SPOTIFY_CLIENT_ID": "client_id",
    "SPOTIFY_CLIENT_SECRET": "client_secret",
    "SPOTIFY_REDIRECT_URI": "redirect_uri",
}


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify application configuration.

    These credentials are obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
        redirect_uri: Redirect URI registered for the application.
                      The OAuth flow listens on this address.
        requests_timeout: Seconds before a single Web API request is
                          abandoned and reported as failed.
    """
    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    requests_timeout: float = DEFAULT_REQUESTS_TIMEOUT


@dataclass(frozen=True)
class StorageConfig:
    """
    Local storage configuration.

    Attributes:
        directory: Absolute path holding database.db and the logs/ folder.
                   Path expansion is performed (~ is expanded to home directory).
    """
    directory: Path

    @property
    def database_path(self) -> Path:
        return self.directory / "database.db"

    @property
    def log_directory(self) -> Path:
        return self.directory / "logs"


@dataclass(frozen=True)
class ImportConfig:
    """
    Matching engine configuration.

    Attributes:
        tick_seconds: Interval of the periodic tick that re-enters the
                      fetch orchestrator when no completion arrived.
    """
    tick_seconds: float = DEFAULT_TICK_SECONDS


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable (frozen dataclass).

    Attributes:
        spotify: Spotify credentials and request settings.
        storage: Local storage settings.
        importer: Matching engine settings (the 'import' section).
    """
    spotify: SpotifyConfig
    storage: StorageConfig
    importer: ImportConfig


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required fields, or contains invalid values.

    Behavior:
        1. Load .env from the working directory (if present)
        2. Locate and parse the YAML file
        3. Apply environment variable overrides to the spotify section
        4. Validate each section, applying defaults for optional values
    """
    load_dotenv()

    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file is allowed when everything comes from the environment
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    spotify_section = _section(raw_config, "spotify")
    for env_var, key in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            spotify_section[key] = value

    return Config(
        spotify=_parse_spotify_config(spotify_section),
        storage=_parse_storage_config(_section(raw_config, "storage")),
        importer=_parse_import_config(_section(raw_config, "import")),
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a copy of an optional top-level section, validating its type."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return dict(section)


def _positive_number(value: Any, field: str) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            f"'{field}' must be a positive number",
            details={"field": field, "value": value}
        )
    return float(value)


def _parse_spotify_config(spotify_section: dict[str, Any]) -> SpotifyConfig:
    """
    Parse and validate the Spotify configuration section.

    Raises:
        ConfigError: If client_id or client_secret is missing or empty,
                     or if an optional field has the wrong type.
    """
    client_id = spotify_section.get("client_id", "")
    client_secret = spotify_section.get("client_secret", "")

    if not isinstance(client_id, str) or not client_id.strip():
        raise ConfigError(
            "'spotify.client_id' must be a non-empty string",
            details={"field": "spotify.client_id"}
        )

    if not isinstance(client_secret, str) or not client_secret.strip():
        raise ConfigError(
            "'spotify.client_secret' must be a non-empty string",
            details={"field": "spotify.client_secret"}
        )

    redirect_uri = spotify_section.get("redirect_uri", DEFAULT_REDIRECT_URI)
    if not isinstance(redirect_uri, str) or not redirect_uri.strip():
        raise ConfigError(
            "'spotify.redirect_uri' must be a non-empty string",
            details={"field": "spotify.redirect_uri"}
        )

    requests_timeout = DEFAULT_REQUESTS_TIMEOUT
    if spotify_section.get("requests_timeout") is not None:
        requests_timeout = _positive_number(
            spotify_section["requests_timeout"], "spotify.requests_timeout"
        )

    return SpotifyConfig(
        client_id=client_id.strip(),
        client_secret=client_secret.strip(),
        redirect_uri=redirect_uri.strip(),
        requests_timeout=requests_timeout,
    )


def _parse_storage_config(storage_section: dict[str, Any]) -> StorageConfig:
    """
    Parse the storage section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory (that happens when the database opens).
    """
    directory = storage_section.get("directory", DEFAULT_STORAGE_DIRECTORY)

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'storage.directory' must be a non-empty string",
            details={"field": "storage.directory"}
        )

    return StorageConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_import_config(import_section: dict[str, Any]) -> ImportConfig:
    tick_seconds = DEFAULT_TICK_SECONDS
    if import_section.get("tick_seconds") is not None:
        tick_seconds = _positive_number(import_section["tick_seconds"], "import.tick_seconds")
    return ImportConfig(tick_seconds=tick_seconds)
