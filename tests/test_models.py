"""Tests for asset identity and the album/edge models."""

import pytest

from album_sync.exceptions import UploadError
from album_sync.models import (
    Album,
    AssetFailure,
    AssetIdentity,
    EdgeReport,
    EdgeState,
    SyncEdge,
    SyncReport,
)

from conftest import make_asset


class TestAssetIdentity:
    """Test identity comparison."""

    def test_checksum_decides_equality(self) -> None:
        """Metadata differences do not matter when checksums match."""
        a = AssetIdentity(checksum="abc", file_name="IMG_1.jpg", file_size=10)
        b = AssetIdentity(checksum="abc", file_name="renamed.jpg", file_size=99)

        assert a == b
        assert hash(a) == hash(b)

    def test_checksum_preferred_over_name_and_size(self) -> None:
        a = AssetIdentity(checksum="abc", file_name="IMG_1.jpg", file_size=10)
        b = AssetIdentity(checksum="def", file_name="IMG_1.jpg", file_size=10)

        assert a != b

    def test_fallback_to_name_and_size(self) -> None:
        a = AssetIdentity(file_name="IMG_1.jpg", file_size=10)
        b = AssetIdentity(file_name="IMG_1.jpg", file_size=10)
        c = AssetIdentity(file_name="IMG_1.jpg", file_size=11)

        assert a == b
        assert a != c
        assert len({a, b, c}) == 2

    def test_requires_checksum_or_name_and_size(self) -> None:
        with pytest.raises(ValueError, match="checksum"):
            AssetIdentity(file_name="IMG_1.jpg")
        with pytest.raises(ValueError):
            AssetIdentity()

    def test_zero_size_is_valid(self) -> None:
        identity = AssetIdentity(file_name="empty.jpg", file_size=0)

        assert identity.key == ("name-size", "empty.jpg", 0)

    def test_str(self) -> None:
        assert str(AssetIdentity(checksum="abc")) == "abc"
        assert str(AssetIdentity(file_name="a.jpg", file_size=3)) == "a.jpg (3 bytes)"


class TestAlbum:
    """Test album snapshot bookkeeping."""

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="name"):
            Album(name="", shared_link="https://photos.test/share/x")

    def test_empty_link_rejected(self) -> None:
        with pytest.raises(ValueError, match="shared link"):
            Album(name="A", shared_link="")

    def test_replace_assets_keeps_first_duplicate_and_order(self) -> None:
        album = Album(name="A", shared_link="https://photos.test/share/a")
        first = make_asset("p1")
        duplicate = make_asset("copy", checksum=first.identity.checksum)

        album.replace_assets([make_asset("p3"), first, duplicate, make_asset("p2")])

        assert [a.file_name for a in album.assets.values()] == ["p3.jpg", "p1.jpg", "p2.jpg"]
        assert album.assets[first.identity] is first

    def test_add(self) -> None:
        album = Album(name="A", shared_link="https://photos.test/share/a")
        asset = make_asset("p1")

        assert album.add(asset) is True
        assert album.add(asset) is False
        assert asset.identity in album
        assert len(album) == 1


class TestEdgeReport:
    """Test the per-edge state machine."""

    def test_upload_path(self) -> None:
        report = EdgeReport(edge=SyncEdge("A", "B"))

        report.advance(EdgeState.DIFFED)
        report.advance(EdgeState.UPLOADING)
        report.advance(EdgeState.COMPLETED)

        assert report.state is EdgeState.COMPLETED
        assert report.succeeded

    @pytest.mark.parametrize(
        "path",
        [
            [EdgeState.UPLOADING],
            [EdgeState.DIFFED, EdgeState.COMPLETED],
            [EdgeState.DIFFED, EdgeState.NO_OP, EdgeState.DIFFED],
            [EdgeState.SKIPPED, EdgeState.DIFFED],
        ],
    )
    def test_illegal_transitions(self, path: list[EdgeState]) -> None:
        report = EdgeReport(edge=SyncEdge("A", "B"))

        with pytest.raises(RuntimeError, match="cannot move"):
            for state in path:
                report.advance(state)

    def test_sync_report_totals(self) -> None:
        asset = make_asset("p1")
        ok = EdgeReport(edge=SyncEdge("A", "B"), uploaded=[asset.identity])
        ok.state = EdgeState.COMPLETED
        failed = EdgeReport(
            edge=SyncEdge("B", "A"),
            failures=[
                AssetFailure(asset.identity, asset.file_name, UploadError(asset.identity, "boom"))
            ],
        )
        failed.state = EdgeState.PARTIALLY_FAILED

        report = SyncReport(edges=[ok, failed])

        assert report.uploaded_count == 1
        assert report.failed_count == 1
        assert report.has_failures
        assert "boom" in failed.failures[0].reason

    def test_fetch_errors_count_as_failures(self) -> None:
        assert SyncReport(fetch_errors={"A": "unreachable"}).has_failures
        assert not SyncReport().has_failures
