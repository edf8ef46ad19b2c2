"""Outbound HTTP used to read "current" specifications from a URL."""

from __future__ import annotations

import json
import socket
from typing import Callable, Mapping
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import DocDriftError
from ..logging import get_logger

DEFAULT_FETCH_TIMEOUT = 30.0


class FetchError(DocDriftError):
    """Raised when a URL cannot be fetched."""


class SpecFetcher:
    """Fetches raw text over HTTP(S).

    ``urlopen`` follows redirects and honours ``HTTP_PROXY`` / ``HTTPS_PROXY``
    through the default proxy handler.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        opener: Callable[..., object] | None = None,
    ) -> None:
        self.timeout = timeout
        self._open = opener or urlopen
        self.logger = get_logger("fetch")

    def get(self, url: str) -> str:
        request = Request(url, headers={"Accept": "*/*"}, method="GET")
        return self._send(request)

    def post_json(self, url: str, payload: Mapping[str, object]) -> str:
        data = json.dumps(payload).encode("utf-8")
        request = Request(
            url,
            data=data,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            method="POST",
        )
        return self._send(request)

    def _send(self, request: Request) -> str:
        url = request.full_url
        self.logger.debug("%s %s", request.get_method(), url)
        try:
            with self._open(request, timeout=self.timeout) as response:  # type: ignore[attr-defined]
                raw = response.read()
        except HTTPError as exc:
            raise FetchError(f"HTTP {exc.code} fetching {url}") from exc
        except (URLError, socket.timeout, TimeoutError) as exc:
            reason = getattr(exc, "reason", exc)
            raise FetchError(f"Failed to fetch {url}: {reason}") from exc
        except ValueError as exc:
            raise FetchError(f"Invalid URL {url}: {exc}") from exc
        if isinstance(raw, bytes):
            return raw.decode("utf-8", errors="replace")
        return str(raw)


__all__ = ["DEFAULT_FETCH_TIMEOUT", "FetchError", "SpecFetcher"]
