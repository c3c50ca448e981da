from __future__ import annotations

import datetime as dt
import threading
from dataclasses import dataclass
from typing import Any, Dict, Tuple
from urllib.parse import quote, unquote, urlsplit

import boto3
from botocore.config import Config

from mediagate.accounts.models import TenantCredential
from mediagate.config import MAX_PRESIGN_EXPIRY_S, Settings
from mediagate.errors import SigningFailure

__all__ = ["SignedURL", "UrlSigner", "quote_key", "reset_client_cache"]

_CLIENT_METHODS = {"GET": "get_object", "HEAD": "head_object"}

_CLIENTS: Dict[Tuple[TenantCredential, str, str], Any] = {}
_CLIENT_LOCK = threading.Lock()


@dataclass(frozen=True)
class SignedURL:
    url: str
    expires_at: dt.datetime


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def quote_key(path: str) -> str:
    """Percent-encode an object key, keeping ``/`` as the path separator."""

    return quote(path, safe="/~")


def _client(credential: TenantCredential, storage_host: str, region: str):
    cache_key = (credential, storage_host, region)
    client = _CLIENTS.get(cache_key)
    if client is not None:
        return client
    with _CLIENT_LOCK:
        client = _CLIENTS.get(cache_key)
        if client is not None:
            return client
        client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=f"https://{credential.endpoint_host(storage_host)}",
            aws_access_key_id=credential.access_key_id,
            aws_secret_access_key=credential.secret_access_key,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        _CLIENTS[cache_key] = client
        return client


def reset_client_cache() -> None:
    with _CLIENT_LOCK:
        _CLIENTS.clear()


class UrlSigner:
    """Query-signs object URLs for a single tenant credential.

    One signer is built per request, so every URL minted while serving that
    request is authorised by the same credential.
    """

    def __init__(self, credential: TenantCredential, settings: Settings) -> None:
        self.credential = credential
        self.host = credential.endpoint_host(settings.storage_host)
        self._storage_host = settings.storage_host
        self._region = settings.storage_region

    def object_url(self, path: str) -> str:
        key = path.lstrip("/")
        return f"https://{self.host}/{self.credential.bucket_name}/{quote_key(key)}"

    def is_storage_url(self, url: str) -> bool:
        try:
            parsed = urlsplit(url)
        except ValueError:
            return False
        return (parsed.hostname or "").lower() == self.host.lower()

    def _target(self, target_url: str) -> Tuple[str, str]:
        try:
            parsed = urlsplit(target_url)
        except ValueError as exc:
            raise SigningFailure(f"malformed target url: {exc}") from exc
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise SigningFailure(f"target is not an absolute url: {target_url!r}")
        if (parsed.hostname or "").lower() != self.host.lower():
            raise SigningFailure(f"target host {parsed.hostname!r} is not {self.host!r}")
        bucket, _, raw_key = parsed.path.lstrip("/").partition("/")
        key = unquote(raw_key)
        if not bucket or not key:
            raise SigningFailure(f"target has no bucket/key: {target_url!r}")
        return bucket, key

    def sign(self, method: str, target_url: str, expires_in: int) -> SignedURL:
        """Return a self-contained URL authorising ``method`` on ``target_url``.

        The authorisation travels in the query string (``X-Amz-*``) and is
        valid for ``expires_in`` seconds from now.
        """

        verb = method.upper()
        client_method = _CLIENT_METHODS.get(verb)
        if client_method is None:
            raise SigningFailure(f"cannot sign {method!r} requests")
        expires_in = int(expires_in)
        if not 1 <= expires_in <= MAX_PRESIGN_EXPIRY_S:
            raise SigningFailure(f"expiry {expires_in}s outside 1..{MAX_PRESIGN_EXPIRY_S}")
        bucket, key = self._target(target_url)

        issued_at = _now()
        client = _client(self.credential, self._storage_host, self._region)
        url = client.generate_presigned_url(
            ClientMethod=client_method,
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in,
            HttpMethod=verb,
        )
        return SignedURL(url=url, expires_at=issued_at + dt.timedelta(seconds=expires_in))

    def sign_path(self, method: str, path: str, expires_in: int) -> SignedURL:
        return self.sign(method, self.object_url(path), expires_in)
