"""Propagating missing assets along sync edges."""

import asyncio
import logging
from collections.abc import Callable, Mapping

from album_sync import diff
from album_sync.exceptions import ContentFetchError, UploadError
from album_sync.graph import SyncGraph
from album_sync.models import (
    Album,
    Asset,
    AssetFailure,
    EdgeReport,
    EdgeState,
    SyncEdge,
    SyncReport,
)
from album_sync.protocols import AlbumService
from album_sync.snapshot import fetch_snapshots

logger = logging.getLogger(__name__)

ReportSink = Callable[[EdgeReport], None]


class PropagationDriver:
    """Copies missing assets along every edge of a sync graph.

    Edges are processed one after the other in graph order, and each edge
    exactly once. A successful upload is recorded on the target album right
    away, so later edges in the same run see it. Assets only travel one hop
    per edge visit: whether A -> B -> C completes in a single run depends on
    A -> B being processed before B -> C.
    """

    def __init__(
        self,
        service: AlbumService,
        dry_run: bool = False,
        max_concurrent_uploads: int = 1,
        report_sink: ReportSink | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            service: Remote album service
            dry_run: If True, report missing assets without transferring them
            max_concurrent_uploads: Maximum transfers in flight within one edge
            report_sink: Called with each edge report once the edge is done
        """
        self.service = service
        self.dry_run = dry_run
        self.max_concurrent_uploads = max_concurrent_uploads
        self.report_sink = report_sink
        self._semaphore = asyncio.Semaphore(max_concurrent_uploads)
        self._album_locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, album: Album) -> asyncio.Lock:
        """Return the lock serializing writes to ``album.assets``."""
        return self._album_locks.setdefault(album.name, asyncio.Lock())

    async def run(
        self, graph: SyncGraph, fetch_errors: Mapping[str, Exception] | None = None
    ) -> SyncReport:
        """Process every edge of the graph.

        Args:
            graph: Graph with snapshots already fetched
            fetch_errors: Albums whose snapshot could not be fetched

        Returns:
            Report covering every edge, in processing order
        """
        fetch_errors = dict(fetch_errors or {})
        report = SyncReport(
            fetch_errors={name: str(error) for name, error in fetch_errors.items()}
        )

        for edge in graph.edges:
            failed = [name for name in (edge.source, edge.target) if name in fetch_errors]
            if failed:
                edge_report = self._skip_edge(edge, failed, fetch_errors)
            else:
                edge_report = await self.sync_edge(graph, edge)

            report.edges.append(edge_report)
            if self.report_sink is not None:
                self.report_sink(edge_report)

        logger.info(
            f"Processed {len(report.edges)} edge(s): {report.uploaded_count} uploaded, "
            f"{report.failed_count} failed, {len(report.skipped_edges)} skipped"
        )
        return report

    def _skip_edge(
        self, edge: SyncEdge, failed: list[str], fetch_errors: Mapping[str, Exception]
    ) -> EdgeReport:
        edge_report = EdgeReport(edge=edge)
        edge_report.error = "; ".join(str(fetch_errors[name]) for name in failed)
        edge_report.advance(EdgeState.SKIPPED)
        logger.error(f"Skipping {edge}: {edge_report.error}")
        return edge_report

    async def sync_edge(self, graph: SyncGraph, edge: SyncEdge) -> EdgeReport:
        """Diff one edge and transfer (or report) what the target is missing.

        Args:
            graph: Graph owning both albums
            edge: Edge to process

        Returns:
            Report for the edge
        """
        source = graph.album(edge.source)
        target = graph.album(edge.target)
        edge_report = EdgeReport(edge=edge)

        edge_report.missing = diff.missing(source, target)
        edge_report.already_present = len(source) - len(edge_report.missing)
        edge_report.advance(EdgeState.DIFFED)

        if not edge_report.missing:
            logger.info(f"{edge}: no assets to synchronize")
            edge_report.advance(EdgeState.NO_OP)
            return edge_report

        if self.dry_run:
            logger.info(
                f"[DRY RUN] {edge}: would upload {len(edge_report.missing)} asset(s)"
            )
            for asset in edge_report.missing:
                logger.info(f"[DRY RUN]   {asset.file_name} ({asset.identity})")
            edge_report.advance(EdgeState.DRY_RUN_REPORTED)
            return edge_report

        logger.info(f"{edge}: uploading {len(edge_report.missing)} missing asset(s)")
        edge_report.advance(EdgeState.UPLOADING)

        tasks = [
            self._transfer_with_semaphore(target, asset, edge_report)
            for asset in edge_report.missing
        ]
        await asyncio.gather(*tasks)

        if edge_report.failures:
            logger.warning(
                f"{edge}: {edge_report.failed_count} of {len(edge_report.missing)} "
                f"asset(s) failed"
            )
            edge_report.advance(EdgeState.PARTIALLY_FAILED)
        else:
            edge_report.advance(EdgeState.COMPLETED)
        return edge_report

    async def _transfer_with_semaphore(
        self, target: Album, asset: Asset, edge_report: EdgeReport
    ) -> None:
        async with self._semaphore:
            await self._transfer(target, asset, edge_report)

    async def _transfer(self, target: Album, asset: Asset, edge_report: EdgeReport) -> None:
        """Download one asset from its source and upload it to ``target``.

        Failures are recorded on the edge report and never raised, so the
        remaining assets of the edge are still attempted.
        """
        lock = self._lock_for(target)
        async with lock:
            if asset.identity in target:
                logger.debug(f"{asset.file_name} already in '{target.name}', not uploading")
                edge_report.already_present += 1
                return

        try:
            content = await self.service.fetch_content(asset.content_ref)
        except Exception as e:
            error = ContentFetchError(asset.identity, str(e))
            logger.error(f"Failed to download {asset.file_name}: {e}")
            edge_report.failures.append(AssetFailure(asset.identity, asset.file_name, error))
            return

        try:
            remote_id = await self.service.upload_asset(target.shared_link, asset, content)
        except Exception as e:
            error = UploadError(asset.identity, str(e))
            logger.error(f"Failed to upload {asset.file_name} to '{target.name}': {e}")
            edge_report.failures.append(AssetFailure(asset.identity, asset.file_name, error))
            return

        async with lock:
            target.add(asset)
            edge_report.uploaded.append(asset.identity)
        logger.info(f"Uploaded {asset.file_name} to '{target.name}' as {remote_id}")


async def run_sync(
    graph: SyncGraph,
    service: AlbumService,
    dry_run: bool = False,
    max_concurrent_fetches: int = 4,
    max_concurrent_uploads: int = 1,
    report_sink: ReportSink | None = None,
) -> SyncReport:
    """Fetch every album snapshot, then propagate along every edge.

    Args:
        graph: Sync graph built from the configuration
        service: Remote album service
        dry_run: If True, report missing assets without transferring them
        max_concurrent_fetches: Maximum snapshot fetches in flight
        max_concurrent_uploads: Maximum transfers in flight within one edge
        report_sink: Called with each edge report once the edge is done

    Returns:
        Report covering every edge and every failed album fetch
    """
    fetch_errors = await fetch_snapshots(graph, service, max_concurrent=max_concurrent_fetches)
    driver = PropagationDriver(
        service,
        dry_run=dry_run,
        max_concurrent_uploads=max_concurrent_uploads,
        report_sink=report_sink,
    )
    return await driver.run(graph, fetch_errors)
