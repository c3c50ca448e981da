from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from mediagate.metrics import MANIFEST_REWRITES, SEGMENTS_SIGNED
from mediagate.storage import upstream
from mediagate.storage.signer import UrlSigner

from .segments import (
    DEFAULT_SUFFIXES,
    SegmentReference,
    classify,
    join_lines,
    manifest_base_dir,
    split_lines,
)

logger = logging.getLogger(__name__)

MANIFEST_MEDIA_TYPE = "application/vnd.apple.mpegurl"


class ManifestRewriter:
    """Fetch an HLS playlist and replace its segment references with signed URLs.

    The manifest itself is signed with a short expiry because it is fetched
    once; segments get a longer one since the player requests them over the
    whole viewing session.
    """

    def __init__(
        self,
        signer: UrlSigner,
        *,
        manifest_ttl_s: int = 3600,
        segment_ttl_s: int = 4 * 3600,
        timeout_s: float = 10.0,
        suffixes: Iterable[str] = DEFAULT_SUFFIXES,
    ) -> None:
        self.signer = signer
        self.manifest_ttl_s = manifest_ttl_s
        self.segment_ttl_s = segment_ttl_s
        self.timeout_s = timeout_s
        self.suffixes = tuple(suffixes)

    async def rewrite(self, manifest_path: str) -> str:
        signed = await run_in_threadpool(
            self.signer.sign_path, "GET", manifest_path, self.manifest_ttl_s
        )
        try:
            text = await upstream.fetch_text(signed.url, timeout=self.timeout_s)
        except Exception:
            MANIFEST_REWRITES.labels(outcome="fetch_failed").inc()
            raise

        try:
            rewritten, signed_count = await self.rewrite_text(manifest_path, text)
        except Exception:
            MANIFEST_REWRITES.labels(outcome="sign_failed").inc()
            raise

        MANIFEST_REWRITES.labels(outcome="ok").inc()
        SEGMENTS_SIGNED.inc(signed_count)
        logger.info(
            "manifest_rewritten",
            extra={"manifest": manifest_path, "segments": signed_count},
        )
        return rewritten

    async def rewrite_text(self, manifest_path: str, text: str) -> Tuple[str, int]:
        """Rewrite already fetched playlist ``text``; returns text and signed count."""

        lines = split_lines(text)
        base_dir = manifest_base_dir(manifest_path)

        tagged = await asyncio.gather(
            *(self._rewrite_line(index, base_dir, line) for index, line in enumerate(lines))
        )

        output: List[Optional[str]] = [None] * len(lines)
        signed_count = 0
        for index, replacement, was_signed in tagged:
            output[index] = replacement
            signed_count += int(was_signed)
        return join_lines(line or "" for line in output), signed_count

    async def _rewrite_line(
        self, index: int, base_dir: str, line: str
    ) -> Tuple[int, str, bool]:
        entry = classify(base_dir, line, self.suffixes)
        if not isinstance(entry, SegmentReference):
            return index, line, False

        if entry.is_absolute and not self.signer.is_storage_url(entry.path):
            return index, line, False

        if entry.is_absolute:
            signed = await run_in_threadpool(
                self.signer.sign, "GET", entry.path, self.segment_ttl_s
            )
        else:
            signed = await run_in_threadpool(
                self.signer.sign_path, "GET", entry.path, self.segment_ttl_s
            )
        return index, signed.url, True


__all__ = ["MANIFEST_MEDIA_TYPE", "ManifestRewriter"]
