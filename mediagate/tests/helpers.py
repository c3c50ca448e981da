from __future__ import annotations

from typing import Callable, List

import httpx

ACCOUNTS = {
    "acctA": {
        "accountId": "acct123",
        "bucketName": "movies-a",
        "accessKeyId": "AKIDEXAMPLEA",
        "secretAccessKey": "secret-a",
    },
    "acctB": {
        "accountId": "acct456",
        "bucketName": "movies-b",
        "accessKeyId": "AKIDEXAMPLEB",
        "secretAccessKey": "secret-b",
    },
}

STORAGE_HOST_A = "acct123.r2.cloudflarestorage.com"


class UpstreamRecorder:
    """Stands in for the storage backend through ``httpx.MockTransport``."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def factory(self, **kwargs) -> httpx.AsyncClient:
        transport = httpx.MockTransport(self._handle)
        timeout = kwargs.get("timeout", 10.0)
        return httpx.AsyncClient(transport=transport, timeout=timeout)


def manifest_handler(body: str, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=body)

    return handler
