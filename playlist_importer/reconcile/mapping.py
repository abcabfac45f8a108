"""
Write-through id mapping store.

Holds the user's choice of Spotify track for each input track id. The
mapping is loaded once from the backend and every mutation writes the
full mapping back immediately, so at most the last in-memory edit can be
lost on an abrupt exit.

The backend is anything with load_id_mapping() and save_id_mapping();
in production that is core.database.Database.
"""

from typing import Protocol

from playlist_importer.core.logger import get_logger


logger = get_logger(__name__)


class MappingBackend(Protocol):
    def load_id_mapping(self) -> dict[str, str]: ...

    def save_id_mapping(self, mapping: dict[str, str]) -> None: ...


class IdMappingStore:
    """
    In-memory mapping from input track id to Spotify track URI.

    Usage:
        store = IdMappingStore(database)
        store.set("1234", "spotify:track:abc")   # upsert + persist
        store.get("1234")                        # "spotify:track:abc"
        store.set("1234", None)                  # remove + persist
    """

    def __init__(self, backend: MappingBackend) -> None:
        self._backend = backend
        self._mapping = dict(backend.load_id_mapping())
        logger.debug(f"Loaded {len(self._mapping)} id mappings")

    def get(self, input_id: str) -> str | None:
        return self._mapping.get(input_id)

    def set(self, input_id: str, output_id: str | None) -> None:
        """
        Set or remove the mapping for `input_id` and persist it.

        Passing None removes the entry (the user chose "don't import").
        Removing an id that has no entry still writes the mapping.

        Raises:
            DatabaseError: If the backend write fails. The in-memory
                           change is kept.
        """
        if output_id is None:
            self._mapping.pop(input_id, None)
        else:
            self._mapping[input_id] = output_id
        self._backend.save_id_mapping(dict(self._mapping))

    def __contains__(self, input_id: object) -> bool:
        return input_id in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the current mapping."""
        return dict(self._mapping)
