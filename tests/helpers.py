"""Shared test doubles and helpers"""

from playlist_importer.core.exceptions import SpotifyError
from playlist_importer.playlist.models import Track
from playlist_importer.session.intents import CallCompleted
from playlist_importer.spotify.models import SpotifyPlaylist


class InMemoryMappingBackend:
    """Mapping backend that records every save"""

    def __init__(self, initial=None):
        self.stored = dict(initial or {})
        self.saves = []

    def load_id_mapping(self):
        return dict(self.stored)

    def save_id_mapping(self, mapping):
        self.stored = dict(mapping)
        self.saves.append(dict(mapping))


class FakeCatalog:
    """Catalog client answering from canned data"""

    def __init__(self):
        self.search_results = {}
        self.catalog = {}
        self.playlists = []
        self.added = []
        self.calls = []

    def search_tracks(self, query):
        self.calls.append(("search", query))
        return list(self.search_results.get(query, []))

    def tracks(self, uris):
        self.calls.append(("tracks", list(uris)))
        return [self.catalog.get(uri) for uri in uris]

    def user_playlists(self):
        self.calls.append(("playlists",))
        return list(self.playlists)

    def create_playlist(self, name):
        self.calls.append(("create", name))
        playlist = SpotifyPlaylist(playlist_id=f"new-{len(self.playlists)}", name=name, owner_id="me")
        self.playlists.append(playlist)
        return playlist

    def add_items(self, playlist_id, uris):
        self.calls.append(("add", playlist_id, list(uris)))
        self.added.append((playlist_id, list(uris)))


class ManualRunner:
    """Runner that only records submissions; tests complete them one by one"""

    def __init__(self):
        self.submitted = []

    def submit(self, request):
        self.submitted.append(request)

    @property
    def last(self):
        return self.submitted[-1]


def complete(session, request, result=None):
    """Dispatch a successful completion for `request`"""
    session.dispatch(CallCompleted(request, result=result))


def fail(session, request, message="boom"):
    """Dispatch a failed completion for `request`"""
    session.dispatch(CallCompleted(request, error=SpotifyError(message)))


def run_with_catalog(session, runner, catalog, limit=1000):
    """Execute the outstanding request against `catalog` until the session is idle"""
    for _ in range(limit):
        if not session.busy:
            return
        # The slot admits one call, so the outstanding one is the last submitted
        request = runner.last
        try:
            result = request.execute(catalog)
        except SpotifyError as e:
            session.dispatch(CallCompleted(request, error=e))
            continue
        session.dispatch(CallCompleted(request, result=result))
    raise AssertionError("runaway request loop")


def candidate(uri, artist, title, duration, album=None):
    return Track(identifier=uri, artist=artist, title=title, duration=duration, album=album)


def xspf(*tracks):
    """Build an XSPF document from dicts of element name -> text"""
    blocks = []
    for track in tracks:
        elements = "".join(f"<{name}>{value}</{name}>" for name, value in track.items())
        blocks.append(f"<track>{elements}</track>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<playlist version="1" xmlns="http://xspf.org/ns/0/">'
        f"<trackList>{''.join(blocks)}</trackList>"
        "</playlist>"
    ).encode("utf-8")


