"""Immich shared-link API client with retry logic using httpx for async HTTP calls."""

import logging
import mimetypes
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from album_sync.models import Asset, AssetIdentity, ContentRef

logger = logging.getLogger(__name__)

SHARE_PATH_SEPARATOR = "/share/"


class ImmichAPIError(Exception):
    """Base exception for Immich API errors."""

    pass


class RateLimitError(ImmichAPIError):
    """Exception raised when hitting rate limits."""

    pass


class ServerError(ImmichAPIError):
    """Exception raised for 5xx server errors."""

    pass


api_retry = retry(
    retry=retry_if_exception_type((RateLimitError, ServerError)),
    wait=wait_exponential(multiplier=1, min=1, max=60),
    stop=stop_after_attempt(5),
    reraise=True,
)


def split_shared_link(shared_link: str) -> tuple[str, str]:
    """Split an Immich shared link into its base URL and access key.

    Args:
        shared_link: Link of the form ``https://host/share/KEY``

    Returns:
        Tuple of (base_url, key)

    Raises:
        ImmichAPIError: If the link does not have the expected shape
    """
    base_url, separator, key = shared_link.partition(SHARE_PATH_SEPARATOR)
    key = key.strip("/")
    if not separator or not base_url or not key or "/" in key:
        raise ImmichAPIError(f"Invalid share link: {shared_link}")
    return base_url.rstrip("/"), key


@dataclass(frozen=True)
class SharedAlbum:
    """An album resolved from a shared link."""

    base_url: str
    key: str
    album_id: str
    album_name: str


class ImmichAPIClient:
    """Client for reading and writing Immich albums through shared links."""

    def __init__(self, timeout: float = 30.0) -> None:
        """Initialize Immich API client.

        Args:
            timeout: Timeout in seconds for each HTTP request
        """
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._shared_albums: dict[str, SharedAlbum] = {}

    async def __aenter__(self) -> "ImmichAPIClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the httpx AsyncClient instance.

        Raises:
            RuntimeError: If client is used outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    async def resolve_shared_link(self, shared_link: str) -> SharedAlbum:
        """Look up the album a shared link points at.

        Results are cached for the lifetime of the client.

        Raises:
            ImmichAPIError: If the link is malformed or does not share an album
        """
        cached = self._shared_albums.get(shared_link)
        if cached is not None:
            return cached

        base_url, key = split_shared_link(shared_link)
        result = await self._get_json(
            f"{base_url}/api/shared-links/me", key, "resolving shared link"
        )

        album = result.get("album")
        if not isinstance(album, dict) or "id" not in album:
            raise ImmichAPIError(f"Shared link does not point at an album: {shared_link}")

        shared = SharedAlbum(
            base_url=base_url,
            key=key,
            album_id=album["id"],
            album_name=album.get("albumName", album["id"]),
        )
        self._shared_albums[shared_link] = shared
        logger.debug(f"Resolved {shared_link} to {shared!r}")
        return shared

    async def fetch_album(self, shared_link: str) -> list[Asset]:
        """Fetch every asset of a shared album.

        Args:
            shared_link: Shared link of the album

        Returns:
            Assets in the order the server reports them

        Raises:
            ImmichAPIError: If the album cannot be fetched
        """
        shared = await self.resolve_shared_link(shared_link)
        result = await self._get_json(
            f"{shared.base_url}/api/albums/{shared.album_id}",
            shared.key,
            f"fetching album '{shared.album_name}'",
        )

        assets: list[Asset] = []
        for raw in result.get("assets", []):
            try:
                assets.append(self._parse_asset(raw, shared))
            except (KeyError, ValueError) as e:
                logger.warning(
                    f"Skipping asset {raw.get('id', '?')} in '{shared.album_name}': {e}"
                )
        logger.debug(f"Fetched {len(assets)} asset(s) from album '{shared.album_name}'")
        return assets

    @api_retry
    async def fetch_content(self, content_ref: ContentRef) -> bytes:
        """Download the original file of an asset.

        Raises:
            ImmichAPIError: If the download fails
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
        """
        url = f"{content_ref.base_url}/api/assets/{content_ref.asset_id}/original"
        context = f"downloading asset {content_ref.asset_id}"

        try:
            response = await self.client.get(
                url, params={"key": content_ref.key, "edited": "true"}
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error while {context}, will retry: {e}")
            raise ServerError(f"Network error: {e}") from e

        if response.status_code >= 400:
            self._handle_error_response(response, context)
        return response.content

    @api_retry
    async def upload_asset(self, shared_link: str, asset: Asset, content: bytes) -> str:
        """Upload an asset and add it to the album behind ``shared_link``.

        Immich answers with ``duplicate`` when the owner already has the same
        file; the existing asset is then added to the album instead.

        Args:
            shared_link: Shared link of the target album
            asset: Asset being copied, for its metadata
            content: Original bytes of the asset

        Returns:
            Remote id of the asset in the target instance

        Raises:
            ImmichAPIError: If the upload or the album update fails
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
        """
        shared = await self.resolve_shared_link(shared_link)
        context = f"uploading {asset.file_name}"

        mime_type = mimetypes.guess_type(asset.file_name)[0] or "application/octet-stream"
        files = {"assetData": (asset.file_name, content, mime_type)}
        data = {
            "deviceId": asset.device_id or "album-sync",
            "deviceAssetId": asset.device_asset_id or f"{asset.file_name}-{len(content)}",
        }
        if asset.file_created_at:
            data["fileCreatedAt"] = asset.file_created_at
        if asset.file_modified_at:
            data["fileModifiedAt"] = asset.file_modified_at

        try:
            response = await self.client.post(
                f"{shared.base_url}/api/assets",
                params={"key": shared.key},
                data=data,
                files=files,
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error while {context}, will retry: {e}")
            raise ServerError(f"Network error: {e}") from e

        result = self._parse_json_response(response, context)
        if response.status_code >= 400:
            self._handle_error_response(response, context, result)

        remote_id = result["id"]
        logger.debug(f"Uploaded {asset.file_name} as {remote_id} ({result.get('status')})")

        await self._add_to_album(shared, remote_id, context)
        return remote_id

    async def _add_to_album(self, shared: SharedAlbum, remote_id: str, context: str) -> None:
        context = f"{context} to album '{shared.album_name}'"
        try:
            response = await self.client.put(
                f"{shared.base_url}/api/albums/{shared.album_id}/assets",
                params={"key": shared.key},
                json={"ids": [remote_id]},
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error while {context}, will retry: {e}")
            raise ServerError(f"Network error: {e}") from e

        result = self._parse_json_response(response, context)
        if response.status_code >= 400:
            self._handle_error_response(response, context, result)

        for item in result if isinstance(result, list) else []:
            if not item.get("success", True) and item.get("error") != "duplicate":
                raise ImmichAPIError(
                    f"Immich refused {context}: {item.get('error', 'unknown error')}"
                )

    @api_retry
    async def _get_json(self, url: str, key: str, context: str) -> dict[str, Any]:
        try:
            response = await self.client.get(url, params={"key": key})
        except httpx.RequestError as e:
            logger.warning(f"Network error while {context}, will retry: {e}")
            raise ServerError(f"Network error: {e}") from e

        result = self._parse_json_response(response, context)
        if response.status_code >= 400:
            self._handle_error_response(response, context, result)
        return result

    @staticmethod
    def _parse_asset(raw: dict[str, Any], shared: SharedAlbum) -> Asset:
        """Build an Asset from an album response entry."""
        exif = raw.get("exifInfo") or {}
        file_name = raw.get("originalFileName") or raw["id"]
        identity = AssetIdentity(
            checksum=raw.get("checksum"),
            file_name=file_name,
            file_size=exif.get("fileSizeInByte"),
        )
        return Asset(
            identity=identity,
            content_ref=ContentRef(shared.base_url, shared.key, raw["id"]),
            file_name=file_name,
            device_id=raw.get("deviceId"),
            device_asset_id=raw.get("deviceAssetId"),
            file_created_at=raw.get("fileCreatedAt"),
            file_modified_at=raw.get("fileModifiedAt"),
        )

    def _parse_json_response(self, response: httpx.Response, context: str) -> Any:
        """Parse JSON response, handling non-JSON responses gracefully.

        Args:
            response: The httpx Response object
            context: Description of what operation was attempted

        Returns:
            Parsed JSON body

        Raises:
            ServerError: If response is 5xx with non-JSON body
            ImmichAPIError: If response has invalid JSON for non-5xx status
        """
        try:
            return response.json()
        except ValueError:
            # Non-JSON response (e.g., HTML error page from a reverse proxy)
            if response.status_code >= 500:
                logger.warning(f"Server returned non-JSON response while {context}, will retry")
                raise ServerError(
                    f"Server error {response.status_code}: {response.text[:200]}"
                )
            raise ImmichAPIError(
                f"Invalid API response while {context}: {response.text[:200]}"
            )

    def _handle_error_response(
        self, response: httpx.Response, context: str, result: Any = None
    ) -> None:
        """Handle error responses from the Immich API.

        Args:
            response: The failed response
            context: Description of what operation failed
            result: Parsed JSON body, if any

        Raises:
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
            ImmichAPIError: For other API errors
        """
        status_code = response.status_code
        message = result.get("message") if isinstance(result, dict) else None
        if isinstance(message, list):
            message = "; ".join(str(part) for part in message)
        error_message = message or response.reason_phrase or str(status_code)

        if status_code == 429:
            logger.warning(f"Rate limit exceeded while {context}, will retry")
            raise RateLimitError(f"Immich rate limit exceeded: {error_message}")

        if status_code >= 500:
            logger.warning(f"Server error while {context}, will retry")
            raise ServerError(f"Immich server error {status_code}: {error_message}")

        # Other errors - don't retry
        error_msg = f"Immich API error {status_code} while {context}: {error_message}"
        logger.error(error_msg)
        raise ImmichAPIError(error_msg)
