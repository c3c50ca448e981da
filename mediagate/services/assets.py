from __future__ import annotations

import logging

from fastapi import Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse

from mediagate.errors import InvalidParameters
from mediagate.metrics import ASSET_REQUESTS
from mediagate.storage import upstream
from mediagate.storage.signer import UrlSigner

logger = logging.getLogger(__name__)


class AssetResponder:
    """Serve single-object assets by redirect (GET) or header relay (HEAD)."""

    def __init__(
        self,
        signer: UrlSigner,
        *,
        ttl_s: int = 3600,
        timeout_s: float = 10.0,
        cors_allow_origin: str = "*",
    ) -> None:
        self.signer = signer
        self.ttl_s = ttl_s
        self.timeout_s = timeout_s
        self.cors_allow_origin = cors_allow_origin

    async def respond(self, method: str, object_path: str) -> Response:
        verb = method.upper()
        if verb == "GET":
            return await self._redirect(object_path)
        if verb == "HEAD":
            return await self._head(object_path)
        ASSET_REQUESTS.labels(method=verb, outcome="rejected").inc()
        raise InvalidParameters(f"Unsupported method {verb}")

    async def _redirect(self, object_path: str) -> Response:
        signed = await run_in_threadpool(
            self.signer.sign_path, "GET", object_path, self.ttl_s
        )
        ASSET_REQUESTS.labels(method="GET", outcome="redirect").inc()
        return RedirectResponse(
            url=signed.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT
        )

    async def _head(self, object_path: str) -> Response:
        signed = await run_in_threadpool(
            self.signer.sign_path, "HEAD", object_path, self.ttl_s
        )
        try:
            upstream_response = await upstream.head(signed.url, timeout=self.timeout_s)
        except Exception:
            ASSET_REQUESTS.labels(method="HEAD", outcome="error").inc()
            raise

        headers = upstream.relay_headers(upstream_response)
        headers["access-control-allow-origin"] = self.cors_allow_origin
        if upstream_response.is_success:
            status_code = status.HTTP_200_OK
            outcome = "ok"
        else:
            status_code = upstream_response.status_code
            outcome = "upstream_status"
            logger.info(
                "asset HEAD relayed upstream status %s for %s",
                status_code,
                object_path,
            )
        ASSET_REQUESTS.labels(method="HEAD", outcome=outcome).inc()
        return Response(status_code=status_code, headers=headers)


__all__ = ["AssetResponder"]
