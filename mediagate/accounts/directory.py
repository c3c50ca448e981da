"""Tenant credential table loaded once from the ``ACCOUNTS_JSON`` blob."""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from pydantic import ValidationError

from mediagate.errors import ConfigUnavailable, InvalidParameters

from .models import TenantCredential

logger = logging.getLogger(__name__)


class AccountDirectory(Mapping[str, TenantCredential]):
    """Read-only tenant key -> credential mapping."""

    def __init__(self, accounts: Mapping[str, TenantCredential]) -> None:
        self._accounts = MappingProxyType(dict(accounts))

    def __getitem__(self, key: str) -> TenantCredential:
        return self._accounts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._accounts)

    def __len__(self) -> int:
        return len(self._accounts)

    def resolve(self, tenant_key: str | None) -> TenantCredential:
        if not tenant_key:
            raise InvalidParameters()
        credential = self._accounts.get(tenant_key)
        if credential is None:
            raise InvalidParameters()
        return credential


def _parse_entry(key: str, value: Any) -> TenantCredential:
    if not isinstance(value, dict):
        raise ConfigUnavailable(f"account {key!r} must be a JSON object")
    try:
        return TenantCredential.model_validate(value)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ConfigUnavailable(
            f"account {key!r} is invalid: {', '.join(fields)}"
        ) from exc


def load_accounts(blob: str | None) -> AccountDirectory:
    """Parse ``blob`` into an :class:`AccountDirectory`.

    Any malformed tenant entry rejects the whole configuration so that bad
    credentials fail at startup rather than on the first request.
    """

    if blob is None or not blob.strip():
        raise ConfigUnavailable("ACCOUNTS_JSON is not configured")
    try:
        payload = json.loads(blob)
    except json.JSONDecodeError as exc:
        raise ConfigUnavailable(f"ACCOUNTS_JSON is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ConfigUnavailable("ACCOUNTS_JSON must be a JSON object")

    accounts = {str(key): _parse_entry(str(key), value) for key, value in payload.items()}
    logger.info("loaded %d storage accounts", len(accounts))
    return AccountDirectory(accounts)


__all__ = ["AccountDirectory", "load_accounts"]
