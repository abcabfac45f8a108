"""
spotify-playlist-importer: Recreate XSPF playlists on Spotify.

Each track of a local XSPF playlist is searched in the Spotify catalog,
candidates are ranked by artist/title/album/duration similarity, and the
chosen matches are added to a Spotify playlist. Choices are stored in a
local database so they survive between runs.

Architecture:
    playlist/   - Track model, identity and search queries; XSPF reader/writer
    reconcile/  - Similarity scoring, id mapping store, match cache,
                  remainder set, call slot and the fetch orchestrator
    sync/       - Import of matched tracks and export of unmatched ones
    spotify/    - Spotify client singleton, API conversions, user session
    session/    - ImportSession: intents, background runner, state owner
    core/       - Configuration, database, logging, exceptions
    cli.py      - Command-line interface

Only one Spotify call is ever outstanding: searches, bulk lookups,
playlist reads and writes all go through one call slot.

Usage:
    Command Line:
        playlist-import match mixtape.xspf
        playlist-import import mixtape.xspf --create "Mixtape"

    Python API:
        from playlist_importer.playlist import parse_playlist
        from playlist_importer.reconcile import IdMappingStore, FetchOrchestrator
        from playlist_importer.session import ImportSession, LoadInputPlaylist
"""

__version__ = "0.1.0"
