"""Pytest configuration and shared fixtures."""

from collections.abc import Iterable

import pytest

from album_sync.config import AlbumConfig
from album_sync.graph import SyncGraph
from album_sync.models import Asset, AssetIdentity, ContentRef


def make_asset(name: str, checksum: str | None = None, size: int | None = None) -> Asset:
    """Build an asset whose checksum defaults to its name."""
    return Asset(
        identity=AssetIdentity(
            checksum=checksum if checksum is not None else f"sum-{name}",
            file_name=f"{name}.jpg",
            file_size=size,
        ),
        content_ref=ContentRef("https://photos.test", "key", f"id-{name}"),
        file_name=f"{name}.jpg",
    )


def make_graph(edges: dict[str, list[str]]) -> SyncGraph:
    """Build a graph from ``{album: sync_with}``, in the given order."""
    return SyncGraph.from_config(
        {
            name: AlbumConfig(name=name, shared_link=link_for(name), sync_with=sync_with)
            for name, sync_with in edges.items()
        }
    )


def link_for(name: str) -> str:
    return f"https://photos.test/share/{name}"


class FakeAlbumService:
    """In-memory album service recording every call."""

    def __init__(self, albums: dict[str, Iterable[Asset]]) -> None:
        self.albums = {link_for(name): list(assets) for name, assets in albums.items()}
        self.fetch_calls: list[str] = []
        self.content_calls: list[str] = []
        self.upload_calls: list[tuple[str, str]] = []
        self.failing_fetches: set[str] = set()
        self.failing_content: set[str] = set()
        self.failing_uploads: set[str] = set()

    async def fetch_album(self, shared_link: str) -> list[Asset]:
        self.fetch_calls.append(shared_link)
        if shared_link in self.failing_fetches:
            raise ConnectionError("album unreachable")
        return list(self.albums[shared_link])

    async def fetch_content(self, content_ref: ContentRef) -> bytes:
        self.content_calls.append(content_ref.asset_id)
        if content_ref.asset_id in self.failing_content:
            raise ConnectionError("download interrupted")
        return content_ref.asset_id.encode()

    async def upload_asset(self, shared_link: str, asset: Asset, content: bytes) -> str:
        self.upload_calls.append((shared_link, asset.file_name))
        if asset.file_name in self.failing_uploads:
            raise RuntimeError("upload rejected")
        self.albums[shared_link].append(asset)
        return f"remote-{asset.file_name}"

    def names_in(self, album: str) -> set[str]:
        return {asset.file_name for asset in self.albums[link_for(album)]}


@pytest.fixture
def assets() -> dict[str, Asset]:
    """Return assets p1..p5 keyed by name."""
    return {name: make_asset(name) for name in ("p1", "p2", "p3", "p4", "p5")}
