"""Fetching album snapshots from the remote service."""

import asyncio
import logging

from album_sync.exceptions import FetchError
from album_sync.graph import SyncGraph
from album_sync.models import Album
from album_sync.protocols import AlbumService

logger = logging.getLogger(__name__)


async def fetch_snapshot(album: Album, service: AlbumService) -> Album:
    """Refresh ``album.assets`` from the remote service.

    Args:
        album: Album to refresh in place
        service: Remote album service

    Returns:
        The same album, for convenience

    Raises:
        FetchError: If the album cannot be fetched for any reason
    """
    try:
        assets = await service.fetch_album(album.shared_link)
    except Exception as e:
        raise FetchError(album.name, str(e)) from e

    album.replace_assets(assets)
    logger.info(f"Album '{album.name}' holds {len(album)} asset(s)")
    return album


async def fetch_snapshots(
    graph: SyncGraph, service: AlbumService, max_concurrent: int = 4
) -> dict[str, FetchError]:
    """Fetch every album of the graph concurrently.

    Each album is written by exactly one fetch, so albums are independent.

    Args:
        graph: Graph whose albums are refreshed
        service: Remote album service
        max_concurrent: Maximum number of fetches in flight

    Returns:
        Fetch errors keyed by album name; empty if every fetch succeeded
    """
    semaphore = asyncio.Semaphore(max_concurrent)

    async def _fetch(album: Album) -> FetchError | None:
        async with semaphore:
            try:
                await fetch_snapshot(album, service)
            except FetchError as e:
                logger.error(str(e))
                return e
        return None

    albums = list(graph.albums.values())
    results = await asyncio.gather(*(_fetch(album) for album in albums))
    return {album.name: error for album, error in zip(albums, results) if error is not None}
