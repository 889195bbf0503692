"""Unit tests for dragwiki.http download and search helpers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests
from ddgs.exceptions import DDGSException, RatelimitException

from dragwiki.errors import ImageDownloadError
from dragwiki.http import ddg_search, fetch_bytes


def _response(body: bytes, content_type: str | None = "image/png; charset=binary") -> MagicMock:
    resp = MagicMock()
    resp.content = body
    resp.headers = {"Content-Type": content_type} if content_type else {}
    return resp


class TestFetchBytes:
    def test_returns_body_and_bare_content_type(self) -> None:
        with patch("dragwiki.http.requests.get", return_value=_response(b"png")):
            assert fetch_bytes("https://x/a.png") == (b"png", "image/png")

    def test_missing_content_type(self) -> None:
        with patch("dragwiki.http.requests.get", return_value=_response(b"x", None)):
            assert fetch_bytes("https://x/a")[1] == "application/octet-stream"

    def test_oversized_body(self) -> None:
        with patch("dragwiki.http.requests.get", return_value=_response(b"x" * 11)):
            with pytest.raises(ImageDownloadError, match="exceeds"):
                fetch_bytes("https://x/a.png", max_size=10)

    def test_http_error(self) -> None:
        resp = _response(b"")
        resp.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        with patch("dragwiki.http.requests.get", return_value=resp):
            with pytest.raises(ImageDownloadError):
                fetch_bytes("https://x/a.png")


class TestDdgSearch:
    """Rate-limit backoff around the DDGS client."""

    def _client(self, *outcomes: object) -> MagicMock:
        client = MagicMock()
        client.__enter__.return_value = client
        client.text.side_effect = list(outcomes)
        return client

    def test_retries_after_rate_limit(self) -> None:
        hits = [{"title": "Katya", "href": "https://x/Katya", "body": ""}]
        client = self._client(RatelimitException("slow down"), hits)
        with patch("dragwiki.http.DDGS", return_value=client), patch(
            "dragwiki.http.time.sleep"
        ) as sleep:
            assert ddg_search("Katya") == hits
        assert client.text.call_count == 2
        assert sleep.call_count == 3

    def test_other_errors_give_up(self) -> None:
        client = self._client(DDGSException("boom"))
        with patch("dragwiki.http.DDGS", return_value=client), patch(
            "dragwiki.http.time.sleep"
        ):
            assert ddg_search("Katya") == []
        assert client.text.call_count == 1

    def test_retries_exhausted(self) -> None:
        client = self._client(*[RatelimitException("429")] * 3)
        with patch("dragwiki.http.DDGS", return_value=client), patch(
            "dragwiki.http.time.sleep"
        ):
            assert ddg_search("Katya", max_retries=2) == []
        assert client.text.call_count == 3
