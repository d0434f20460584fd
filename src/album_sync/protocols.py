"""Capabilities the sync engine needs from a remote album service."""

from typing import Protocol

from album_sync.models import Asset, ContentRef


class AlbumService(Protocol):
    """Remote album service used by snapshots and the propagation driver."""

    async def fetch_album(self, shared_link: str) -> list[Asset]:
        """Return every asset of the album behind ``shared_link``, in service order."""
        ...

    async def fetch_content(self, content_ref: ContentRef) -> bytes:
        """Download the original bytes of an asset."""
        ...

    async def upload_asset(self, shared_link: str, asset: Asset, content: bytes) -> str:
        """Upload ``content`` into the album behind ``shared_link``.

        Returns:
            The remote id of the uploaded asset
        """
        ...
