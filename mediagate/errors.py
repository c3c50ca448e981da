"""Error taxonomy shared by the gateway components.

Core components raise these typed errors; only the request router turns them
into HTTP responses.
"""

from __future__ import annotations


class GatewayError(Exception):
    status_code: int = 500
    default_detail: str = "Internal Error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ConfigUnavailable(GatewayError):
    status_code = 500
    default_detail = "Config Error"


class InvalidParameters(GatewayError):
    status_code = 400
    default_detail = "Invalid Parameters"


class UpstreamManifestUnavailable(GatewayError):
    status_code = 404
    default_detail = "Manifest not found in storage"


class SigningFailure(GatewayError):
    status_code = 500
    default_detail = "Invalid signing target"


class UpstreamAssetError(GatewayError):
    status_code = 502
    default_detail = "Storage backend unavailable"

    def __init__(self, detail: str | None = None, status_code: int | None = None) -> None:
        super().__init__(detail)
        if status_code is not None:
            self.status_code = status_code


__all__ = [
    "ConfigUnavailable",
    "GatewayError",
    "InvalidParameters",
    "SigningFailure",
    "UpstreamAssetError",
    "UpstreamManifestUnavailable",
]
