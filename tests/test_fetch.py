"""
Tests for frame source fetching (store reads and HTTP).
"""

from __future__ import annotations

import httpx
import pytest

from gifloom.exceptions import StoreReadError
from gifloom.fetch import FrameFetcher


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestFrameFetcher:
    def test_store_url_reads_store(self, memory_store):
        url = memory_store.seed(b"payload", "uploads/a.png")

        def handler(request):
            raise AssertionError("store URLs must not hit the network")

        fetcher = FrameFetcher(memory_store, client=_client(handler))
        assert fetcher.fetch(url) == b"payload"
        assert memory_store.get_calls == 1

    def test_missing_store_blob(self, memory_store):
        fetcher = FrameFetcher(memory_store)
        with pytest.raises(StoreReadError):
            fetcher.fetch(memory_store.url_for("uploads/none.png"))
        fetcher.close()

    def test_http_ok(self, memory_store):
        def handler(request):
            assert request.url.host == "cdn.example.com"
            return httpx.Response(200, content=b"remote bytes")

        fetcher = FrameFetcher(memory_store, client=_client(handler))
        assert fetcher.fetch("https://cdn.example.com/x.png") == b"remote bytes"

    def test_http_error_status(self, memory_store):
        fetcher = FrameFetcher(memory_store, client=_client(lambda r: httpx.Response(404)))
        with pytest.raises(StoreReadError) as info:
            fetcher.fetch("https://cdn.example.com/missing.png")
        assert "404" in str(info.value)

    def test_connection_error(self, memory_store):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = FrameFetcher(memory_store, client=_client(handler))
        with pytest.raises(StoreReadError):
            fetcher.fetch("https://cdn.example.com/x.png")

    def test_injected_client_left_open(self, memory_store):
        client = _client(lambda r: httpx.Response(200))
        FrameFetcher(memory_store, client=client).close()
        assert not client.is_closed
        client.close()
