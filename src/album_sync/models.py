"""Data models for the album sync engine."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from album_sync.exceptions import AssetTransferError


@dataclass(frozen=True, eq=False)
class AssetIdentity:
    """What makes two assets "the same" across albums.

    The content checksum is preferred whenever the service exposes it. Without
    a checksum the original file name and byte size are used together.
    Album-specific metadata never takes part in the comparison.
    """

    checksum: str | None = None
    file_name: str | None = None
    file_size: int | None = None

    def __post_init__(self) -> None:
        """Validate that the identity can be compared."""
        if not self.checksum and (not self.file_name or self.file_size is None):
            raise ValueError(
                "Asset identity needs a checksum or both a file name and a file size"
            )

    @property
    def key(self) -> tuple:
        """Return the comparison key for this identity."""
        if self.checksum:
            return ("checksum", self.checksum)
        return ("name-size", self.file_name, self.file_size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssetIdentity):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        if self.checksum:
            return self.checksum
        return f"{self.file_name} ({self.file_size} bytes)"


@dataclass(frozen=True)
class ContentRef:
    """Where to download the original bytes of an asset from."""

    base_url: str
    key: str
    asset_id: str


@dataclass(frozen=True)
class Asset:
    """A single media item as reported by an album."""

    identity: AssetIdentity
    content_ref: ContentRef
    file_name: str
    device_id: str | None = None
    device_asset_id: str | None = None
    file_created_at: str | None = None
    file_modified_at: str | None = None


@dataclass
class Album:
    """A shared album and the assets it is currently believed to hold.

    ``assets`` keeps the order the remote service reported. It is replaced
    when a snapshot is fetched and appended to as uploads succeed.
    """

    name: str
    shared_link: str
    sync_with: list[str] = field(default_factory=list)
    assets: dict[AssetIdentity, Asset] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        """Validate album data."""
        if not self.name:
            raise ValueError("Album name cannot be empty")
        if not self.shared_link:
            raise ValueError(f"Album '{self.name}' has no shared link")

    def __contains__(self, identity: object) -> bool:
        return identity in self.assets

    def __len__(self) -> int:
        return len(self.assets)

    def add(self, asset: Asset) -> bool:
        """Record an asset as present.

        Returns:
            False if an asset with the same identity was already present
        """
        if asset.identity in self.assets:
            return False
        self.assets[asset.identity] = asset
        return True

    def replace_assets(self, assets: Iterable[Asset]) -> None:
        """Replace the snapshot, keeping the first asset seen per identity."""
        snapshot: dict[AssetIdentity, Asset] = {}
        for asset in assets:
            snapshot.setdefault(asset.identity, asset)
        self.assets = snapshot


@dataclass(frozen=True)
class SyncEdge:
    """Directed relation: ``target`` receives missing assets from ``source``."""

    source: str
    target: str

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


class EdgeState(str, Enum):
    """Processing state of a sync edge within one run."""

    PENDING = "pending"
    DIFFED = "diffed"
    NO_OP = "no_op"
    DRY_RUN_REPORTED = "dry_run_reported"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    SKIPPED = "skipped"


EDGE_TRANSITIONS: dict[EdgeState, frozenset[EdgeState]] = {
    EdgeState.PENDING: frozenset({EdgeState.DIFFED, EdgeState.SKIPPED}),
    EdgeState.DIFFED: frozenset(
        {EdgeState.NO_OP, EdgeState.DRY_RUN_REPORTED, EdgeState.UPLOADING}
    ),
    EdgeState.UPLOADING: frozenset({EdgeState.COMPLETED, EdgeState.PARTIALLY_FAILED}),
}


@dataclass(frozen=True)
class AssetFailure:
    """A single asset that could not be transferred along an edge."""

    identity: AssetIdentity
    file_name: str
    error: AssetTransferError

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass
class EdgeReport:
    """Structured outcome of processing one sync edge."""

    edge: SyncEdge
    state: EdgeState = EdgeState.PENDING
    missing: list[Asset] = field(default_factory=list)
    uploaded: list[AssetIdentity] = field(default_factory=list)
    already_present: int = 0
    failures: list[AssetFailure] = field(default_factory=list)
    error: str | None = None

    def advance(self, state: EdgeState) -> None:
        """Move the edge to its next state.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if state not in EDGE_TRANSITIONS.get(self.state, frozenset()):
            raise RuntimeError(
                f"Edge {self.edge} cannot move from {self.state.value} to {state.value}"
            )
        self.state = state

    @property
    def uploaded_count(self) -> int:
        return len(self.uploaded)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def succeeded(self) -> bool:
        return self.state in (
            EdgeState.NO_OP,
            EdgeState.DRY_RUN_REPORTED,
            EdgeState.COMPLETED,
        )


@dataclass
class SyncReport:
    """Summary of a whole sync run."""

    edges: list[EdgeReport] = field(default_factory=list)
    fetch_errors: dict[str, str] = field(default_factory=dict)

    @property
    def uploaded_count(self) -> int:
        return sum(report.uploaded_count for report in self.edges)

    @property
    def failed_count(self) -> int:
        return sum(report.failed_count for report in self.edges)

    @property
    def skipped_edges(self) -> list[EdgeReport]:
        return [report for report in self.edges if report.state is EdgeState.SKIPPED]

    @property
    def has_failures(self) -> bool:
        """True if any album fetch or asset transfer failed."""
        return bool(self.fetch_errors) or any(
            not report.succeeded for report in self.edges
        )
