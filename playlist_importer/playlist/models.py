"""
Data models for playlist tracks.

This module defines the immutable Track dataclass shared by both sides of
the reconciliation:
    - input tracks, parsed from the user's XSPF playlist file
    - candidate tracks, returned by the Spotify catalog (identifier is the
      Spotify track URI)

Besides the fields of an XSPF <track>, a Track knows how to derive:
    - track_id: a stable identity used as key of the id mapping
    - query(): the primary search text ("Artist Title")
    - adjusted_query(): a relaxed search text with bracketed annotations
      such as "(feat. X)" or "[Remastered]" removed

Usage:
    from playlist_importer.playlist.models import Track

    track = Track(artist="Artist [Top]", title="Title (feat. Somebody)")
    track.query()           # "Artist [Top] Title (feat. Somebody)"
    track.adjusted_query()  # "Artist Title"
"""

import hashlib
import re
from dataclasses import dataclass, fields


_WHITESPACE_RE = re.compile(r"\s+")

# Greedy on purpose: one strip removes everything from the first opening
# bracket to the last closing bracket of the field.
_BRACKETS_RE = re.compile(r"[(\[].*[)\]]")


def _join_query(artist: str, title: str) -> str:
    return _WHITESPACE_RE.sub(" ", f"{artist} {title}".strip())


@dataclass(frozen=True)
class Track:
    """
    Immutable representation of a playlist track.

    Field names follow the XSPF element names except `artist` (<creator>)
    and `track_number` (<trackNum>). All fields are optional; an XSPF file
    may omit any of them.

    Attributes:
        location: URI of the resource (usually a local file path).
        identifier: Canonical id of the track. For catalog tracks this is
                    the Spotify track URI, e.g. "spotify:track:4cOdK2wGLETKBW3PvgPWqT".
        title: Track title.
        artist: Artist name(s); catalog tracks join several artists with ", ".
        annotation: Free-text comment.
        info: URI of a page about the track.
        album: Album name.
        track_number: Position of the track on its album.
        duration: Duration in milliseconds.
    """

    location: str | None = None
    identifier: str | None = None
    title: str | None = None
    artist: str | None = None
    annotation: str | None = None
    info: str | None = None
    album: str | None = None
    track_number: int | None = None
    duration: int | None = None

    @property
    def track_id(self) -> str:
        """
        Stable identity of the track.

        Returns the explicit identifier when the file supplies one. Otherwise
        a 64-bit hash over every field, in declaration order, rendered as a
        decimal string. Two textually identical tracks therefore share one
        identity (and one mapping slot).
        """
        if self.identifier is not None:
            return self.identifier

        digest = hashlib.blake2b(digest_size=8)
        for field in fields(self):
            value = getattr(self, field.name)
            if value is None:
                digest.update(b"\x00")
            else:
                encoded = str(value).encode("utf-8")
                digest.update(b"\x01" + len(encoded).to_bytes(8, "big") + encoded)
        return str(int.from_bytes(digest.digest(), "big"))

    def query(self) -> str:
        """
        Primary search text: artist and title joined by one space.

        Leading/trailing whitespace is removed and every whitespace run is
        collapsed to a single space.
        """
        return _join_query(self.artist or "", self.title or "")

    def adjusted_query(self) -> str:
        """
        Relaxed search text used when the primary query found nothing.

        Same as query(), but a bracketed or parenthesized span is first
        stripped from artist and from title independently. When neither
        field contains such a span the result equals query().
        """
        artist = _BRACKETS_RE.sub("", self.artist or "", count=1)
        title = _BRACKETS_RE.sub("", self.title or "", count=1)
        return _join_query(artist, title)

    @property
    def label(self) -> str:
        """Display text, e.g. 'Queen - Bohemian Rhapsody'."""
        return f"{self.artist or 'Unknown Artist'} - {self.title or 'Unknown Title'}"


@dataclass(frozen=True)
class Playlist:
    """
    Immutable representation of an XSPF playlist.

    Attributes:
        title: Playlist title, if the document has one.
        annotation: Playlist comment, if the document has one.
        tracks: Tracks in document order.
    """

    title: str | None = None
    annotation: str | None = None
    tracks: tuple[Track, ...] = ()

    @classmethod
    def with_tracks_and_title(cls, tracks: list[Track], title: str) -> "Playlist":
        return cls(title=title, tracks=tuple(tracks))

    @property
    def track_count(self) -> int:
        return len(self.tracks)
