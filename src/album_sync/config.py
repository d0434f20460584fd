"""Loading the album configuration file."""

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from album_sync.exceptions import ConfigError

logger = logging.getLogger(__name__)

KNOWN_KEYS = {"shared_link", "sync_with"}


@dataclass(frozen=True)
class AlbumConfig:
    """Configuration entry for one shared album."""

    name: str
    shared_link: str
    sync_with: list[str] = field(default_factory=list)


def parse_config(data: Mapping[str, Any]) -> dict[str, AlbumConfig]:
    """Validate raw configuration data.

    Only the structure of each entry is checked here. References between
    albums are resolved when the sync graph is built.

    Args:
        data: Mapping of album name to its settings table

    Returns:
        Album configurations keyed by name, in file order

    Raises:
        ConfigError: If an entry is malformed
    """
    albums: dict[str, AlbumConfig] = {}

    for name, entry in data.items():
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Album '{name}' must be a table, got {type(entry).__name__}")

        unknown = sorted(set(entry) - KNOWN_KEYS)
        if unknown:
            logger.warning(f"Ignoring unknown keys for album '{name}': {', '.join(unknown)}")

        shared_link = entry.get("shared_link")
        if not isinstance(shared_link, str) or not shared_link.strip():
            raise ConfigError(f"Album '{name}' needs a non-empty 'shared_link' string")

        sync_with = entry.get("sync_with", [])
        if not isinstance(sync_with, list) or not all(
            isinstance(other, str) for other in sync_with
        ):
            raise ConfigError(f"Album '{name}': 'sync_with' must be a list of album names")

        albums[name] = AlbumConfig(
            name=name, shared_link=shared_link.strip(), sync_with=list(sync_with)
        )

    logger.debug(f"Parsed {len(albums)} album(s) from configuration")
    return albums


def load_config(path: Path) -> dict[str, AlbumConfig]:
    """Load album configuration from a TOML file.

    Args:
        path: Path to the configuration file

    Returns:
        Album configurations keyed by name, in file order

    Raises:
        ConfigError: If the file is missing, unreadable or malformed
    """
    if not path.is_file():
        raise ConfigError(f"Configuration file does not exist: {path}")

    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e

    if not data:
        raise ConfigError(f"No albums configured in {path}")

    albums = parse_config(data)
    logger.info(f"Loaded {len(albums)} album(s) from {path}")
    return albums
