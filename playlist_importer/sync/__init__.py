"""Playlist import into Spotify and export of unmatched tracks."""

from playlist_importer.sync.driver import PlaylistSyncDriver

__all__ = ["PlaylistSyncDriver"]
