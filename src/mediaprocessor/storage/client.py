"""Storage proxy client.

Fetches source objects over HTTP from the storage proxy, authenticating with
Cloudflare Access service-token headers. There is no retry: a failed fetch is
reported to the caller as-is.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from mediaprocessor.constants import DEFAULT_MAX_INPUT_SIZE
from mediaprocessor.errors import (
    ConfigurationError,
    ObjectNotFoundError,
    ObjectTooLargeError,
    StorageForbiddenError,
    StorageTransportError,
)

if TYPE_CHECKING:
    from mediaprocessor.config import Settings

logger = logging.getLogger(__name__)


class StorageProxyClient:
    """Async client for ``GET {base_url}/{key}`` against the storage proxy."""

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        *,
        max_input_size: int = DEFAULT_MAX_INPUT_SIZE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_input_size = max_input_size
        self._client = httpx.AsyncClient(
            headers={
                "CF-Access-Client-Id": client_id,
                "CF-Access-Client-Secret": client_secret,
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> StorageProxyClient:
        """Build a client from configuration.

        Raises:
            ConfigurationError: If the proxy URL or credentials are not set.
        """
        required = {
            "storage_proxy_url": settings.storage_proxy_url,
            "cf_access_client_id": settings.cf_access_client_id,
            "cf_access_client_secret": settings.cf_access_client_secret,
        }
        for name, value in required.items():
            if not value:
                raise ConfigurationError(f"MEDIAPROCESSOR_{name.upper()}")

        return cls(
            settings.storage_proxy_url,  # type: ignore[arg-type]
            settings.cf_access_client_id,  # type: ignore[arg-type]
            settings.cf_access_client_secret,  # type: ignore[arg-type]
            max_input_size=settings.max_input_size,
            timeout=settings.storage_timeout,
        )

    async def fetch(self, key: str) -> bytes:
        """Return the object body for ``key``.

        Raises:
            ObjectNotFoundError: The proxy answered 404.
            StorageForbiddenError: The proxy answered 403 (bad credentials).
            StorageTransportError: Any other status or a network failure.
            ObjectTooLargeError: The body exceeds ``max_input_size``.
        """
        url = f"{self.base_url}/{key}"
        try:
            async with self._client.stream("GET", url) as response:
                self._check_status(key, response)
                return await self._read_body(key, response)
        except httpx.HTTPError as exc:
            logger.error("Storage proxy request for %s failed: %s", key, exc)
            raise StorageTransportError(key) from exc

    def _check_status(self, key: str, response: httpx.Response) -> None:
        if response.status_code == httpx.codes.NOT_FOUND:
            raise ObjectNotFoundError(key)
        if response.status_code == httpx.codes.FORBIDDEN:
            logger.error("Access denied by storage proxy for %s (check CF Access credentials)", key)
            raise StorageForbiddenError(key)
        if not response.is_success:
            logger.error("Unexpected status %d from storage proxy for %s", response.status_code, key)
            raise StorageTransportError(key, response.status_code)

    async def _read_body(self, key: str, response: httpx.Response) -> bytes:
        declared = response.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_input_size:
            raise ObjectTooLargeError(key, int(declared), self.max_input_size)

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            # Checked again while reading: Content-Length may be absent or wrong
            if len(body) > self.max_input_size:
                raise ObjectTooLargeError(key, len(body), self.max_input_size)
        return bytes(body)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
