"""
Frame source fetching.

URLs minted by the configured blob store are read back through the store
itself; any other URL is fetched over HTTP.  Failed fetches are not
retried.
"""

from __future__ import annotations

import logging

import httpx

from gifloom.exceptions import BlobNotFoundError, StoreReadError
from gifloom.storage import BlobStore

logger = logging.getLogger(__name__)


class FrameFetcher:
    """Reads image bytes by URL.  Safe for concurrent use."""

    def __init__(
        self,
        store: BlobStore,
        timeout_s: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.store = store
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)
        self._owns_client = client is None

    def fetch(self, url: str) -> bytes:
        """Return the bytes behind *url*.

        Raises
        ------
        StoreReadError
            If the blob is missing, the request fails, or the server
            answers with a non-2xx status.
        """
        key = self.store.key_for_url(url)
        if key is not None:
            try:
                return self.store.get(key)
            except BlobNotFoundError as exc:
                raise StoreReadError(f"Image not found: {url}") from exc

        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StoreReadError(
                f"Fetching {url} returned HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise StoreReadError(f"Fetching {url} failed: {exc}") from exc
        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return response.content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
