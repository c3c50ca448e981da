"""HTTP access to the object store through already-signed URLs."""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from mediagate.errors import UpstreamAssetError, UpstreamManifestUnavailable

logger = logging.getLogger(__name__)

_HOP_BY_HOP = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
}


def _http_client_factory(**kwargs: Any) -> httpx.AsyncClient:
    timeout = kwargs.pop("timeout", 10.0)
    return httpx.AsyncClient(timeout=timeout, **kwargs)


async def fetch_text(url: str, *, timeout: float) -> str:
    try:
        async with _http_client_factory(timeout=timeout) as client:
            response = await client.get(url)
    except httpx.HTTPError as exc:
        logger.warning("manifest fetch failed: %s", exc.__class__.__name__)
        raise UpstreamManifestUnavailable() from exc
    if not response.is_success:
        logger.info("manifest fetch returned %s", response.status_code)
        raise UpstreamManifestUnavailable()
    return response.text


async def head(url: str, *, timeout: float) -> httpx.Response:
    try:
        async with _http_client_factory(timeout=timeout) as client:
            return await client.head(url)
    except httpx.HTTPError as exc:
        logger.warning("asset HEAD failed: %s", exc.__class__.__name__)
        raise UpstreamAssetError(f"HEAD request failed: {exc.__class__.__name__}") from exc


def relay_headers(response: httpx.Response) -> Dict[str, str]:
    """End-to-end headers of ``response`` suitable for relaying to a client.

    Upstream CORS headers are dropped; the gateway sets its own.
    """

    return {
        name: value
        for name, value in response.headers.items()
        if name.lower() not in _HOP_BY_HOP
        and not name.lower().startswith("access-control-")
    }


__all__ = ["fetch_text", "head", "relay_headers"]
