"""The sync graph: configured albums and the edges between them."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from album_sync.config import AlbumConfig
from album_sync.exceptions import ConfigError
from album_sync.models import Album, SyncEdge

logger = logging.getLogger(__name__)


@dataclass
class SyncGraph:
    """Albums plus the directed edges along which assets are propagated.

    Edges are kept as a flat list of album names. Iterating them never
    follows references between albums, so cycles in the configuration are
    harmless. The graph owns each album's snapshot for the duration of a run.
    """

    albums: dict[str, Album] = field(default_factory=dict)
    edges: list[SyncEdge] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: Mapping[str, AlbumConfig]) -> "SyncGraph":
        """Build the graph and resolve every ``sync_with`` reference.

        Edges are ordered by the target album's position in the
        configuration, then by the source's position in the target's
        ``sync_with`` list.

        Raises:
            ConfigError: If a reference is unknown, repeated or points at the album itself
        """
        albums: dict[str, Album] = {}
        for name, entry in config.items():
            try:
                albums[name] = Album(
                    name=name,
                    shared_link=entry.shared_link,
                    sync_with=list(entry.sync_with),
                )
            except ValueError as e:
                raise ConfigError(str(e)) from e

        edges: list[SyncEdge] = []
        for target in albums.values():
            seen: set[str] = set()
            for source in target.sync_with:
                if source not in albums:
                    raise ConfigError(
                        f"Album '{target.name}' syncs with unknown album '{source}'"
                    )
                if source == target.name:
                    raise ConfigError(f"Album '{target.name}' cannot sync with itself")
                if source in seen:
                    raise ConfigError(
                        f"Album '{target.name}' lists '{source}' more than once in sync_with"
                    )
                seen.add(source)
                edges.append(SyncEdge(source=source, target=target.name))

        logger.info(f"Sync graph has {len(albums)} album(s) and {len(edges)} edge(s)")
        return cls(albums=albums, edges=edges)

    def album(self, name: str) -> Album:
        return self.albums[name]

    def edges_touching(self, name: str) -> list[SyncEdge]:
        """Return the edges that have ``name`` as source or target."""
        return [edge for edge in self.edges if name in (edge.source, edge.target)]
