"""
Match cache and remainder set.

MatchCache keeps, per input track id, every Spotify candidate seen so far
ranked by similarity. Inserting candidates has two side effects:

    1. Default selection: if the id mapping has no entry for the input
       track yet, the best-ranked candidate becomes its mapping. An
       existing mapping (user choice or earlier default) is never
       replaced.
    2. Remainder satisfaction: if the input track waits in the remainder
       set for the candidate it is mapped to, and that candidate is now
       in its match list, the remainder entry is dropped.

RemainderSet holds the input tracks whose stored mapping points at a
Spotify track that has not been fetched in this session. It is consumed
by the orchestrator in pages of BATCH_SIZE bulk lookups.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping

from playlist_importer.core.exceptions import UnknownTrackError
from playlist_importer.core.logger import get_logger
from playlist_importer.playlist.models import Track
from playlist_importer.reconcile.mapping import IdMappingStore
from playlist_importer.reconcile.similarity import similarity, sort_key
from playlist_importer.utils import BATCH_SIZE


logger = get_logger(__name__)


@dataclass(frozen=True)
class MatchEntry:
    """A scored Spotify candidate for one input track."""

    score: float
    candidate: Track


# =============================================================================
# Remainder Set
# =============================================================================

class RemainderSet:
    """
    Input tracks waiting for a bulk lookup of their mapped Spotify track.

    The page layout is fixed when the set is rebuilt: page i always covers
    the same input ids, in rebuild order. Entries satisfied in the meantime
    are left out of their page when it is issued, and a page left with no
    entries is skipped. The cursor only moves forward and is reset by
    rebuild().

    Attributes:
        cursor: Number of pages already issued (or skipped).
    """

    def __init__(self, page_size: int = BATCH_SIZE) -> None:
        self._page_size = page_size
        self._pending: dict[str, str] = {}
        self._pages: list[list[str]] = []
        self.cursor = 0

    def rebuild(self, entries: Iterable[tuple[str, str]]) -> None:
        """Replace the set with (input_id, output_id) pairs and reset the cursor."""
        self._pending = dict(entries)
        order = list(self._pending)
        self._pages = [
            order[start:start + self._page_size]
            for start in range(0, len(order), self._page_size)
        ]
        self.cursor = 0

    def discard(self, input_id: str) -> None:
        self._pending.pop(input_id, None)

    def get(self, input_id: str) -> str | None:
        return self._pending.get(input_id)

    def __contains__(self, input_id: object) -> bool:
        return input_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def page_count(self) -> int:
        return len(self._pages)

    @property
    def exhausted(self) -> bool:
        """True once every page has been issued or skipped."""
        return self.cursor >= len(self._pages)

    def next_page(self) -> dict[str, str] | None:
        """
        Take the next non-empty page and advance the cursor past it.

        Returns:
            {input_id: output_id} for the still-pending entries of the
            page, or None if no page with pending entries is left.
        """
        while not self.exhausted:
            page_ids = self._pages[self.cursor]
            self.cursor += 1
            page = {
                input_id: self._pending[input_id]
                for input_id in page_ids
                if input_id in self._pending
            }
            if page:
                return page
            logger.debug(f"Skipping remainder page {self.cursor - 1}: already satisfied")
        return None


# =============================================================================
# Match Cache
# =============================================================================

class MatchCache:
    """
    Ranked candidates per input track for one loaded playlist.

    Args:
        tracks: Input tracks of the loaded playlist. Duplicates share one
                identity and therefore one match list.
        id_mapping: The write-through mapping store.
        remainder: Remainder set of the same session.
    """

    def __init__(
        self,
        tracks: Iterable[Track],
        id_mapping: IdMappingStore,
        remainder: RemainderSet
    ) -> None:
        self._tracks: dict[str, Track] = {}
        for track in tracks:
            self._tracks.setdefault(track.track_id, track)
        self._matches: dict[str, list[MatchEntry]] = {}
        self._id_mapping = id_mapping
        self._remainder = remainder

    def track(self, input_id: str) -> Track:
        try:
            return self._tracks[input_id]
        except KeyError:
            raise UnknownTrackError(
                f"Unknown input track: {input_id}",
                details={"input_id": input_id}
            ) from None

    def matches(self, input_id: str) -> tuple[MatchEntry, ...]:
        return tuple(self._matches.get(input_id, ()))

    def insert(self, input_id: str, candidates: list[Track]) -> tuple[MatchEntry, ...]:
        """
        Score `candidates` against the input track and merge them in.

        New entries are appended and the whole list re-sorted descending by
        score. The sort is stable, so equal scores keep insertion order, and
        NaN scores sort last. Inserting the same candidate twice keeps both.

        Returns:
            The updated match list.

        Raises:
            UnknownTrackError: If `input_id` is not a track of the loaded
                               playlist.
            DatabaseError: If persisting a default mapping fails.
        """
        track = self.track(input_id)

        entries = self._matches.setdefault(input_id, [])
        entries.extend(MatchEntry(similarity(track, candidate), candidate) for candidate in candidates)
        entries.sort(key=lambda entry: sort_key(entry.score))

        if entries and input_id not in self._id_mapping:
            best = entries[0]
            logger.debug(f"Default mapping {input_id} -> {best.candidate.identifier}")
            self._id_mapping.set(input_id, best.candidate.identifier)

        wanted = self._remainder.get(input_id)
        if wanted is not None and any(entry.candidate.identifier == wanted for entry in entries):
            self._remainder.discard(input_id)

        return tuple(entries)

    def snapshot(self) -> Mapping[str, tuple[MatchEntry, ...]]:
        return {input_id: tuple(entries) for input_id, entries in self._matches.items()}
