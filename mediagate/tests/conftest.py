"""Shared pytest fixtures for gateway tests."""

from __future__ import annotations

import json
from typing import Callable, Iterable

import httpx
import pytest
from fastapi.testclient import TestClient

from mediagate.accounts import AccountDirectory, TenantCredential, load_accounts
from mediagate.app import create_app
from mediagate.config import Settings
from mediagate.storage import upstream
from mediagate.storage.signer import UrlSigner, reset_client_cache

from .helpers import ACCOUNTS, UpstreamRecorder


@pytest.fixture(autouse=True)
def _reset_signer_clients():
    reset_client_cache()
    yield
    reset_client_cache()


@pytest.fixture
def settings() -> Settings:
    return Settings(ACCOUNTS_JSON=json.dumps(ACCOUNTS))


@pytest.fixture
def accounts(settings: Settings) -> AccountDirectory:
    return load_accounts(settings.accounts_json)


@pytest.fixture
def credential(accounts: AccountDirectory) -> TenantCredential:
    return accounts["acctA"]


@pytest.fixture
def signer(credential: TenantCredential, settings: Settings) -> UrlSigner:
    return UrlSigner(credential, settings)


@pytest.fixture
def mock_upstream(monkeypatch: pytest.MonkeyPatch):
    """Return an installer that routes upstream HTTP calls to ``handler``."""

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> UpstreamRecorder:
        recorder = UpstreamRecorder(handler)
        monkeypatch.setattr(upstream, "_http_client_factory", recorder.factory)
        return recorder

    return install


@pytest.fixture
def gateway_client(settings: Settings, accounts: AccountDirectory) -> Iterable[TestClient]:
    app = create_app(settings=settings, accounts=accounts)
    with TestClient(app) as client:
        yield client
