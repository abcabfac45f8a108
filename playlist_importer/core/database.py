"""
Thread-safe SQLite database for spotify-playlist-importer.

The database is the durable side of the id mapping: every time the user
(or the matching engine's default selection) changes which Spotify track
represents an input track, the full mapping is written here immediately.
It also remembers the last Spotify session so a still-valid token can be
reused across runs.

Schema:
    schema_version:   Single row with the schema version
    id_mapping:       One row per input track id -> chosen Spotify track URI
    spotify_session:  At most one row with the last user session

Usage:
    db = Database(storage_dir / "database.db")

    mapping = db.load_id_mapping()
    mapping["1234"] = "spotify:track:abc"
    db.save_id_mapping(mapping)
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from playlist_importer.core.exceptions import DatabaseError


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS id_mapping (
    input_id TEXT PRIMARY KEY,
    output_id TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS spotify_session (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    user_id TEXT NOT NULL,
    access_token TEXT NOT NULL,
    expiration_ts REAL NOT NULL
);
"""


class Database:
    """
    Thread-safe SQLite database holding the id mapping and session.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection as a context manager.

        The connection is created once and reused for all operations.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
        yield self._conn

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()

            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise DatabaseError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )
            conn.commit()

    # =========================================================================
    # Id Mapping
    # =========================================================================

    def load_id_mapping(self) -> dict[str, str]:
        """Return the stored mapping from input track id to Spotify track URI."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT input_id, output_id FROM id_mapping")
                return {row["input_id"]: row["output_id"] for row in cursor.fetchall()}

    def save_id_mapping(self, mapping: dict[str, str]) -> None:
        """
        Replace the stored mapping with the given one.

        The whole mapping is written in a single transaction, so a crash
        leaves either the previous or the new mapping on disk.

        Raises:
            DatabaseError: If the write fails.
        """
        with self._lock:
            with self._get_connection() as conn:
                try:
                    with conn:
                        conn.execute("DELETE FROM id_mapping")
                        conn.executemany(
                            "INSERT INTO id_mapping (input_id, output_id) VALUES (?, ?)",
                            mapping.items()
                        )
                except sqlite3.Error as e:
                    raise DatabaseError(
                        f"Failed to save id mapping: {e}",
                        details={"path": str(self.db_path), "entries": len(mapping)}
                    ) from e

    # =========================================================================
    # Session
    # =========================================================================

    def load_session(self) -> dict[str, Any] | None:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT user_id, access_token, expiration_ts FROM spotify_session WHERE id = 1"
                )
                row = cursor.fetchone()
                return dict(row) if row else None

    def save_session(self, user_id: str, access_token: str, expiration_ts: float) -> None:
        with self._lock:
            with self._get_connection() as conn:
                try:
                    with conn:
                        conn.execute("""
                            INSERT INTO spotify_session (id, user_id, access_token, expiration_ts)
                            VALUES (1, ?, ?, ?)
                            ON CONFLICT(id) DO UPDATE SET
                                user_id = excluded.user_id,
                                access_token = excluded.access_token,
                                expiration_ts = excluded.expiration_ts
                        """, (user_id, access_token, expiration_ts))
                except sqlite3.Error as e:
                    raise DatabaseError(
                        f"Failed to save session: {e}",
                        details={"path": str(self.db_path)}
                    ) from e
