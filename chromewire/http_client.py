from __future__ import annotations

import json
import urllib.parse
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


class HttpClientError(Exception):
    pass


def _build_request(url: str) -> Request:
    return Request(url, headers={"User-Agent": "chromewire/1.0"})


def http_get_json(url: str, timeout: float = 1.0) -> tuple[int, Any]:
    """GET a JSON document from a local DevTools HTTP endpoint.

    Returns ``(status, payload)``. Non-2xx answers are returned with a ``None``
    payload rather than raised, since the caller polls until the browser is up.
    Transport failures (refused connection, timeout) and undecodable bodies
    raise HttpClientError.
    """
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise HttpClientError("Only http/https are supported")
    try:
        with urlopen(_build_request(url), timeout=timeout) as resp:
            body = resp.read()
            status = resp.status
    except HTTPError as exc:
        return exc.code, None
    except (TimeoutError, URLError, OSError) as exc:
        raise HttpClientError(str(exc)) from exc
    try:
        return status, json.loads(body.decode())
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise HttpClientError(f"Invalid JSON from {url}: {exc}") from exc
