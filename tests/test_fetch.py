from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import patch

import pytest
import requests
from requests import Response

from filecache import (
    CacheSettings,
    CachedJSONFetcher,
    FetchError,
    FetchNotFoundError,
    FetchRateLimitError,
    FileCache,
    HTTPClient,
)


def _response(status_code: int, payload: Any, url: str = "https://api.test/v1") -> Response:
    response = Response()
    response.status_code = status_code
    response._content = json.dumps(payload).encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    response.url = url
    return response


def _fetcher(tmp_path, **kwargs) -> CachedJSONFetcher:
    http = HTTPClient("https://api.test/v1/", auth_token="token")
    cache = FileCache(CacheSettings(directory=str(tmp_path), prefix="http."))
    return CachedJSONFetcher(http, cache, **kwargs)


def test_cache_key_is_filesystem_safe():
    assert CachedJSONFetcher.cache_key("/prices/BTC-USD/") == "prices_BTC-USD"
    assert (
        CachedJSONFetcher.cache_key("forecast", {"lon": 10.7, "lat": 59.9})
        == "forecast__lat-59.9_lon-10.7"
    )
    assert CachedJSONFetcher.cache_key("search", {"q": "a b/c"}) == "search__q-a_b_c"
    assert CachedJSONFetcher.cache_key("/") == "root"


def test_fetch_uses_cache(tmp_path):
    fetcher = _fetcher(tmp_path)
    payload = [{"id": 1, "name": "first"}]

    with patch.object(fetcher.http.session, "request") as mock_request:
        mock_request.return_value = _response(200, payload)

        first = asyncio.run(fetcher.fetch("items", params={"page": 1}, max_age="5 minutes"))
        second = asyncio.run(fetcher.fetch("items", params={"page": 1}, max_age="5 minutes"))

    assert first.from_cache is False
    assert second.from_cache is True
    assert first.value == second.value == payload
    assert mock_request.call_count == 1
    call = mock_request.call_args.kwargs
    assert call["url"] == "https://api.test/v1/items"
    assert call["params"] == {"page": 1}
    assert (tmp_path / "http.items__page-1.cache.json").exists()


def test_fetch_without_cache_always_requests(tmp_path):
    fetcher = _fetcher(tmp_path)

    with patch.object(fetcher.http.session, "request") as mock_request:
        mock_request.return_value = _response(200, {"ok": True})
        asyncio.run(fetcher.fetch("status", use_cache=False))
        result = asyncio.run(fetcher.fetch("status", use_cache=False))

    assert result.from_cache is False
    assert result.value == {"ok": True}
    assert mock_request.call_count == 2
    assert list(tmp_path.iterdir()) == []


def test_default_max_age_applies(tmp_path):
    fetcher = _fetcher(tmp_path, default_max_age=0)

    with patch.object(fetcher.http.session, "request") as mock_request:
        mock_request.return_value = _response(200, {"v": 1})
        asyncio.run(fetcher.fetch("thing", cache_key="custom"))
        # an explicit max age overrides the default
        assert asyncio.run(fetcher.fetch("thing", cache_key="custom", max_age="1 h")).from_cache

    assert (tmp_path / "http.custom.cache.json").exists()


@pytest.mark.parametrize(
    "status,error",
    [(404, FetchNotFoundError), (429, FetchRateLimitError), (500, FetchError)],
)
def test_http_errors_are_mapped_and_not_cached(tmp_path, status, error):
    fetcher = _fetcher(tmp_path)

    with patch.object(fetcher.http.session, "request") as mock_request:
        mock_request.return_value = _response(status, {"detail": "nope"})
        with pytest.raises(error) as excinfo:
            asyncio.run(fetcher.fetch("missing"))

    assert excinfo.value.status_code == status
    assert list(tmp_path.iterdir()) == []


def test_transport_errors_are_wrapped():
    client = HTTPClient("https://api.test")
    with patch.object(client.session, "request", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(FetchError, match="refused"):
            client.get_json("anything")


def test_non_json_body_is_rejected():
    client = HTTPClient("https://api.test")
    response = _response(200, "ignored")
    response.headers["Content-Type"] = "text/html"
    with patch.object(client.session, "request", return_value=response):
        with pytest.raises(FetchError, match="Expected a JSON body"):
            client.get_json("page")


def test_empty_body_is_none():
    client = HTTPClient("https://api.test")
    response = _response(204, None)
    response._content = b""
    with patch.object(client.session, "request", return_value=response):
        assert client.get_json("thing") is None


def test_session_setup():
    client = HTTPClient("https://api.test/", auth_token="secret", max_retries=5)
    assert client.session.headers["Authorization"] == "Bearer secret"
    assert client.session.headers["Accept"] == "application/json"
    assert client.session.get_adapter("https://api.test").max_retries.total == 5
    assert client.url_for("/items") == "https://api.test/items"
