# tests/test_config.py
"""Test configuration loading"""

from unittest.mock import patch

import pytest

from playlist_importer.core.config import (
    DEFAULT_REDIRECT_URI,
    DEFAULT_REQUESTS_TIMEOUT,
    DEFAULT_TICK_SECONDS,
    load_config,
)
from playlist_importer.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("SPOTIFY_CLIENT_ID", "SPOTIFY_CLIENT_SECRET", "SPOTIFY_REDIRECT_URI"):
        monkeypatch.delenv(name, raising=False)
    with patch("playlist_importer.core.config.load_dotenv"):
        yield


def _write(temp_dir, text):
    path = temp_dir / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test load_config()"""

    def test_minimal_config_uses_defaults(self, temp_dir):
        path = _write(temp_dir, "spotify:\n  client_id: id\n  client_secret: secret\n")
        config = load_config(path)

        assert config.spotify.client_id == "id"
        assert config.spotify.client_secret == "secret"
        assert config.spotify.redirect_uri == DEFAULT_REDIRECT_URI
        assert config.spotify.requests_timeout == DEFAULT_REQUESTS_TIMEOUT
        assert config.importer.tick_seconds == DEFAULT_TICK_SECONDS
        assert config.storage.database_path.name == "database.db"

    def test_full_config(self, temp_dir):
        path = _write(temp_dir, (
            "spotify:\n"
            "  client_id: id\n"
            "  client_secret: secret\n"
            "  redirect_uri: http://localhost:9999/cb\n"
            "  requests_timeout: 5\n"
            f"storage:\n  directory: {temp_dir / 'store'}\n"
            "import:\n  tick_seconds: 30\n"
        ))
        config = load_config(path)

        assert config.spotify.redirect_uri == "http://localhost:9999/cb"
        assert config.spotify.requests_timeout == 5
        assert config.storage.directory == (temp_dir / "store").resolve()
        assert config.storage.log_directory == (temp_dir / "store" / "logs").resolve()
        assert config.importer.tick_seconds == 30

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigError):
            load_config(temp_dir / "nope.yaml")

    def test_invalid_yaml(self, temp_dir):
        with pytest.raises(ConfigError):
            load_config(_write(temp_dir, "spotify: [unclosed\n"))

    def test_missing_credentials(self, temp_dir):
        with pytest.raises(ConfigError):
            load_config(_write(temp_dir, "spotify:\n  client_id: id\n"))

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "true"])
    def test_invalid_tick(self, temp_dir, value):
        path = _write(temp_dir, f"spotify:\n  client_id: id\n  client_secret: s\nimport:\n  tick_seconds: {value}\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_environment_overrides(self, temp_dir, monkeypatch):
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "env-id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "env-secret")
        config = load_config(_write(temp_dir, ""))

        assert config.spotify.client_id == "env-id"
        assert config.spotify.client_secret == "env-secret"
