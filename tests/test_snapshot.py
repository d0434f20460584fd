"""Tests for fetching album snapshots."""

import asyncio

import pytest

from album_sync.exceptions import FetchError
from album_sync.models import Asset
from album_sync.snapshot import fetch_snapshot, fetch_snapshots

from conftest import FakeAlbumService, link_for, make_graph


@pytest.mark.asyncio
class TestSnapshots:
    """Test snapshot population and error containment."""

    async def test_fetch_snapshot_populates_assets(self, assets: dict[str, Asset]) -> None:
        graph = make_graph({"A": []})
        service = FakeAlbumService({"A": [assets["p2"], assets["p1"]]})

        album = await fetch_snapshot(graph.album("A"), service)

        assert list(album.assets.values()) == [assets["p2"], assets["p1"]]

    async def test_fetch_snapshot_is_idempotent(self, assets: dict[str, Asset]) -> None:
        graph = make_graph({"A": []})
        service = FakeAlbumService({"A": [assets["p1"], assets["p2"]]})
        album = graph.album("A")

        await fetch_snapshot(album, service)
        first = dict(album.assets)
        await fetch_snapshot(album, service)

        assert album.assets == first

    async def test_fetch_snapshot_wraps_errors(self) -> None:
        graph = make_graph({"A": []})
        service = FakeAlbumService({"A": []})
        service.failing_fetches.add(link_for("A"))

        with pytest.raises(FetchError, match="Could not fetch album 'A'") as excinfo:
            await fetch_snapshot(graph.album("A"), service)

        assert excinfo.value.album == "A"
        assert isinstance(excinfo.value.__cause__, ConnectionError)

    async def test_fetch_snapshots_contains_failures(self, assets: dict[str, Asset]) -> None:
        graph = make_graph({"A": ["B"], "B": ["A"], "C": []})
        service = FakeAlbumService({"A": [assets["p1"]], "B": [], "C": [assets["p3"]]})
        service.failing_fetches.add(link_for("B"))

        errors = await fetch_snapshots(graph, service)

        assert list(errors) == ["B"]
        assert len(graph.album("A")) == 1
        assert len(graph.album("C")) == 1
        assert len(service.fetch_calls) == 3

    async def test_fetch_snapshots_respects_concurrency_limit(self) -> None:
        max_concurrent = 0
        current = 0

        class SlowService(FakeAlbumService):
            async def fetch_album(self, shared_link: str) -> list[Asset]:
                nonlocal max_concurrent, current
                current += 1
                max_concurrent = max(max_concurrent, current)
                await asyncio.sleep(0.01)
                current -= 1
                return []

        names = {f"album{i}": [] for i in range(8)}
        graph = make_graph(names)

        errors = await fetch_snapshots(graph, SlowService(names), max_concurrent=3)

        assert errors == {}
        assert 1 < max_concurrent <= 3
