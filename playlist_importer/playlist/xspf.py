"""
XSPF ("XML Shareable Playlist Format") reader and writer.

Only the subset the importer needs is supported: playlist title and
annotation, and for every <track> the elements location, identifier,
title, creator, annotation, info, album, trackNum and duration. Any
other element is ignored on input.

The xspf namespace (http://xspf.org/ns/0/) is optional on input so that
hand-written files without an xmlns attribute load as well.

Usage:
    from playlist_importer.playlist.xspf import parse_playlist, to_xspf

    playlist = parse_playlist(Path("mixtape.xspf").read_bytes())
    document = to_xspf(playlist)
"""

import xml.etree.ElementTree as ET
from xml.sax.saxutils import escape

from playlist_importer.core.exceptions import PlaylistFormatError
from playlist_importer.playlist.models import Playlist, Track


XSPF_NAMESPACE = "http://xspf.org/ns/0/"

EXPORT_TITLE = "spotify-playlist-importer"
EXPORT_FILENAME = "spotify-playlist-importer.xspf"

_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    f'<playlist version="1" xmlns="{XSPF_NAMESPACE}">\n'
    "  <trackList>\n"
)
_FOOTER = "\n  </trackList>\n</playlist>"

# (xspf element, Track attribute) in document order
_TRACK_ELEMENTS = (
    ("location", "location"),
    ("identifier", "identifier"),
    ("title", "title"),
    ("creator", "artist"),
    ("annotation", "annotation"),
    ("info", "info"),
    ("album", "album"),
    ("trackNum", "track_number"),
    ("duration", "duration"),
)

_INTEGER_ELEMENTS = {"trackNum", "duration"}


# =============================================================================
# Parsing
# =============================================================================

def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _text(element: ET.Element, name: str) -> str | None:
    child = _child(element, name)
    if child is None:
        return None
    return child.text or ""


def _parse_track(element: ET.Element, position: int) -> Track:
    values: dict[str, str | int | None] = {}
    for tag, attribute in _TRACK_ELEMENTS:
        text = _text(element, tag)
        if text is not None and tag in _INTEGER_ELEMENTS:
            try:
                values[attribute] = int(text.strip())
            except ValueError as e:
                raise PlaylistFormatError(
                    f"Track {position}: <{tag}> is not an integer: {text!r}",
                    details={"track": position, "element": tag, "value": text}
                ) from e
        else:
            values[attribute] = text
    return Track(**values)


def parse_playlist(content: bytes) -> Playlist:
    """
    Parse an XSPF document.

    Args:
        content: Raw file content.

    Returns:
        Playlist with its tracks in document order.

    Raises:
        PlaylistFormatError: If the document is not well-formed XML, is not
                             a <playlist>, has no <trackList>, or a
                             trackNum/duration is not an integer.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise PlaylistFormatError(
            f"Invalid playlist file: {e}",
            details={"error": str(e)}
        ) from e

    if _local_name(root.tag) != "playlist":
        raise PlaylistFormatError(
            f"Invalid playlist file: root element is <{_local_name(root.tag)}>, expected <playlist>",
            details={"root": root.tag}
        )

    track_list = _child(root, "trackList")
    if track_list is None:
        raise PlaylistFormatError("Invalid playlist file: missing <trackList>")

    tracks = [
        _parse_track(element, position)
        for position, element in enumerate(
            (child for child in track_list if _local_name(child.tag) == "track"),
            start=1
        )
    ]

    return Playlist(
        title=_text(root, "title"),
        annotation=_text(root, "annotation"),
        tracks=tuple(tracks),
    )


# =============================================================================
# Serialization
# =============================================================================

def track_to_xspf(track: Track) -> str:
    """Render one <track> block; absent fields are omitted."""
    lines = ["    <track>"]
    for tag, attribute in _TRACK_ELEMENTS:
        value = getattr(track, attribute)
        if value is not None:
            lines.append(f"      <{tag}>{escape(str(value))}</{tag}>")
    lines.append("    </track>")
    return "\n".join(lines)


def to_xspf(playlist: Playlist) -> str:
    """
    Serialize a playlist to an XSPF document.

    The output always has the same header and footer; only the track list
    is serialized. Tracks keep their order.
    """
    return _HEADER + "\n".join(track_to_xspf(track) for track in playlist.tracks) + _FOOTER
