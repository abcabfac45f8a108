"""
Similarity scoring between an input track and a Spotify candidate.

The score is a weighted sum of four terms:

    score = (2 * artist + 1 * album + 2 * title + 5 * duration) / 10

artist, album and title are the Jaro similarity of the case-folded
strings (rapidfuzz), each in [0, 1]; missing fields compare as "".
duration is (1 - 2 * |a - b| / (a + b)) ** 2 over the durations in
milliseconds (missing = 0). It is 1.0 for identical durations, 0 when one
is three times the other, and rises back to 1.0 as one duration
approaches 0, so a missing duration is not penalized.

When both durations are 0 the duration term is undefined and the score
is NaN. Ranking code must treat NaN as the worst possible score; see
sort_key().
"""

import math

from rapidfuzz.distance import Jaro

from playlist_importer.playlist.models import Track


ARTIST_WEIGHT = 2
ALBUM_WEIGHT = 1
TITLE_WEIGHT = 2
DURATION_WEIGHT = 5
TOTAL_WEIGHT = ARTIST_WEIGHT + ALBUM_WEIGHT + TITLE_WEIGHT + DURATION_WEIGHT


def _text_similarity(a: str | None, b: str | None) -> float:
    a = (a or "").casefold()
    b = (b or "").casefold()
    if a == b:
        # Two missing fields count as a perfect match
        return 1.0
    return Jaro.similarity(a, b)


def duration_similarity(duration_a: int | None, duration_b: int | None) -> float:
    """Squared relative duration agreement; NaN when both durations are 0."""
    a = duration_a or 0
    b = duration_b or 0
    total = a + b
    if total == 0:
        return math.nan
    return (1.0 - 2 * abs(a - b) / total) ** 2


def similarity(track: Track, candidate: Track) -> float:
    """
    Score how well `candidate` matches `track`.

    Args:
        track: The input track from the user's playlist.
        candidate: A track returned by the Spotify catalog.

    Returns:
        The weighted score. Higher is better; NaN if neither track has a
        duration.
    """
    return (
        ARTIST_WEIGHT * _text_similarity(track.artist, candidate.artist)
        + ALBUM_WEIGHT * _text_similarity(track.album, candidate.album)
        + TITLE_WEIGHT * _text_similarity(track.title, candidate.title)
        + DURATION_WEIGHT * duration_similarity(track.duration, candidate.duration)
    ) / TOTAL_WEIGHT


def sort_key(score: float) -> float:
    """Key for sorting scores descending with NaN last."""
    return math.inf if math.isnan(score) else -score
