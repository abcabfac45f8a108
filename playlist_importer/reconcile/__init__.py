"""
Reconciliation engine: matches input tracks against the Spotify catalog.

    - similarity: score an input track against a candidate
    - mapping: write-through id mapping store
    - cache: ranked match lists and the remainder set
    - slot: the single catalog call slot
    - requests: logical catalog requests and fetch tasks
    - orchestrator: the search / bulk lookup scheduler
"""

from playlist_importer.reconcile.cache import MatchCache, MatchEntry, RemainderSet
from playlist_importer.reconcile.mapping import IdMappingStore
from playlist_importer.reconcile.orchestrator import FetchOrchestrator, OrchestratorState
from playlist_importer.reconcile.requests import (
    AddItemsRequest,
    Auto,
    CatalogRequest,
    CreatePlaylistRequest,
    FetchTask,
    LookupRequest,
    Manual,
    PlaylistsRequest,
    SearchRequest,
)
from playlist_importer.reconcile.similarity import similarity
from playlist_importer.reconcile.slot import CallSlot

__all__ = [
    "similarity",
    "IdMappingStore",
    "MatchCache",
    "MatchEntry",
    "RemainderSet",
    "CallSlot",
    "FetchOrchestrator",
    "OrchestratorState",
    "FetchTask",
    "Auto",
    "Manual",
    "CatalogRequest",
    "SearchRequest",
    "LookupRequest",
    "AddItemsRequest",
    "PlaylistsRequest",
    "CreatePlaylistRequest",
]
