"""Exceptions raised by the album sync engine."""

from typing import Any


class AlbumSyncError(Exception):
    """Base exception for album sync errors."""

    pass


class ConfigError(AlbumSyncError):
    """Raised when the album configuration is missing, malformed or inconsistent."""

    pass


class FetchError(AlbumSyncError):
    """Raised when an album snapshot cannot be fetched."""

    def __init__(self, album: str, reason: str) -> None:
        self.album = album
        self.reason = reason
        super().__init__(f"Could not fetch album '{album}': {reason}")


class AssetTransferError(AlbumSyncError):
    """Base exception for failures moving a single asset between albums."""

    stage = "transfer"

    def __init__(self, identity: Any, reason: str) -> None:
        self.identity = identity
        self.reason = reason
        super().__init__(f"{self.stage} failed for {identity}: {reason}")


class ContentFetchError(AssetTransferError):
    """Raised when the original bytes of an asset cannot be downloaded."""

    stage = "download"


class UploadError(AssetTransferError):
    """Raised when an asset cannot be uploaded to the target album."""

    stage = "upload"
