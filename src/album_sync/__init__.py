"""Album Sync - Propagate missing assets between shared photo albums."""

__version__ = "0.1.0"

from album_sync.api_client import ImmichAPIClient
from album_sync.config import AlbumConfig, load_config
from album_sync.diff import missing
from album_sync.exceptions import (
    AlbumSyncError,
    ConfigError,
    ContentFetchError,
    FetchError,
    UploadError,
)
from album_sync.graph import SyncGraph
from album_sync.models import Album, Asset, AssetIdentity, EdgeReport, EdgeState, SyncReport
from album_sync.propagation import PropagationDriver, run_sync
from album_sync.snapshot import fetch_snapshot, fetch_snapshots

__all__ = [
    "ImmichAPIClient",
    "AlbumConfig",
    "load_config",
    "missing",
    "AlbumSyncError",
    "ConfigError",
    "ContentFetchError",
    "FetchError",
    "UploadError",
    "SyncGraph",
    "Album",
    "Asset",
    "AssetIdentity",
    "EdgeReport",
    "EdgeState",
    "SyncReport",
    "PropagationDriver",
    "run_sync",
    "fetch_snapshot",
    "fetch_snapshots",
]
