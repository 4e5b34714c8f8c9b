"""
HTTP utilities for fetching JSON payloads.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import FetchError, FetchNotFoundError, FetchRateLimitError

_RETRY_STATUSES = (429, 500, 502, 503, 504)
_ERRORS_BY_STATUS = {404: FetchNotFoundError, 429: FetchRateLimitError}


def build_session(
    *,
    auth_token: Optional[str] = None,
    max_retries: int = 3,
    backoff_factor: float = 0.5,
) -> requests.Session:
    """
    Session that asks for JSON and retries idempotent reads on transient failures.
    """
    session = requests.Session()
    adapter = HTTPAdapter(
        max_retries=Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=_RETRY_STATUSES,
            allowed_methods=("GET", "HEAD"),
            raise_on_status=False,
        )
    )
    for scheme in ("https://", "http://"):
        session.mount(scheme, adapter)
    session.headers["Accept"] = "application/json"
    if auth_token:
        session.headers["Authorization"] = f"Bearer {auth_token}"
    return session


class HTTPClient:
    """
    GET JSON documents relative to a base URL.

    Only reads are supported: responses are meant to be memoized by
    :class:`filecache.fetch.CachedJSONFetcher`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth_token: Optional[str] = None,
        timeout: float = 30,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = build_session(
            auth_token=auth_token,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get_json(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET ``path`` and return the decoded body, or None for an empty body.
        """
        try:
            response = self.session.request(
                method="GET",
                url=self.url_for(path),
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise FetchError(f"GET {self.url_for(path)} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            error = _ERRORS_BY_STATUS.get(response.status_code, FetchError)
            raise error(
                f"GET {response.url} returned status {response.status_code}",
                status_code=response.status_code,
            )
        return _decode(response)


def _decode(response: Response) -> Any:
    if not response.content:
        return None
    content_type = response.headers.get("Content-Type", "").lower()
    if "json" not in content_type:
        raise FetchError(
            f"Expected a JSON body from {response.url}, got '{content_type or 'unknown'}'.",
            status_code=response.status_code,
        )
    try:
        return response.json()
    except ValueError as exc:
        raise FetchError(
            f"Failed to parse JSON body from {response.url}.",
            status_code=response.status_code,
        ) from exc
