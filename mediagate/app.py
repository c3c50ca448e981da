from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from mediagate.accounts import AccountDirectory, load_accounts
from mediagate.api.health import health as _health_handler
from mediagate.config import Settings, get_settings, log_level_value, validate_settings
from mediagate.errors import ConfigUnavailable, GatewayError, InvalidParameters
from mediagate.hls import MANIFEST_MEDIA_TYPE, ManifestRewriter
from mediagate.metrics import MetricsMiddleware, metrics_app
from mediagate.services import AssetResponder
from mediagate.storage import UrlSigner

logger = logging.getLogger(__name__)

PING_VALUE = "ping"
MANIFEST_SUFFIX = ".m3u8"


def _error_response(exc: GatewayError) -> Response:
    return PlainTextResponse(exc.detail, status_code=exc.status_code)


def _load_directory(settings: Settings) -> AccountDirectory | None:
    try:
        return load_accounts(settings.accounts_json)
    except ConfigUnavailable as exc:
        logger.error("storage account configuration unavailable: %s", exc.detail)
        return None


async def _deliver(
    request: Request, video: Optional[str], acc: Optional[str]
) -> Response:
    state = request.app.state
    if state.accounts is None:
        raise ConfigUnavailable()

    if video == PING_VALUE:
        return PlainTextResponse("Pong!")

    if not video or not acc:
        raise InvalidParameters()
    credential = state.accounts.resolve(acc)

    settings: Settings = state.settings
    signer = UrlSigner(credential, settings)
    object_path = video.lstrip("/")

    if object_path.lower().endswith(MANIFEST_SUFFIX):
        rewriter = ManifestRewriter(
            signer,
            manifest_ttl_s=settings.manifest_ttl_s,
            segment_ttl_s=settings.segment_ttl_s,
            timeout_s=settings.upstream_timeout_s,
            suffixes=settings.segment_suffixes,
        )
        text = await rewriter.rewrite(object_path)
        return Response(
            content=text,
            media_type=MANIFEST_MEDIA_TYPE,
            headers={
                "Access-Control-Allow-Origin": settings.cors_allow_origin,
                "Cache-Control": "no-store, no-cache, must-revalidate",
            },
        )

    responder = AssetResponder(
        signer,
        ttl_s=settings.asset_ttl_s,
        timeout_s=settings.upstream_timeout_s,
        cors_allow_origin=settings.cors_allow_origin,
    )
    return await responder.respond(request.method, object_path)


def create_app(
    settings: Settings | None = None, accounts: AccountDirectory | None = None
) -> FastAPI:
    """Build the gateway app around an explicitly loaded configuration."""

    settings = settings or get_settings()
    level = log_level_value(settings.log_level)
    if level is not None:
        logging.getLogger("mediagate").setLevel(level)
    for problem in validate_settings(settings):
        logger.warning("settings: %s", problem)

    if accounts is None:
        accounts = _load_directory(settings)

    app = FastAPI(title="mediagate")
    app.state.settings = settings
    app.state.accounts = accounts

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_allow_origin],
        allow_methods=["GET", "HEAD"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)

    router = APIRouter()

    @router.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
    async def deliver(
        request: Request,
        video: Optional[str] = Query(None),
        acc: Optional[str] = Query(None),
    ) -> Response:
        try:
            return await _deliver(request, video, acc)
        except GatewayError as exc:
            if exc.status_code >= 500:
                logger.error("request failed: %s", exc.detail)
            return _error_response(exc)
        except Exception as exc:
            logger.exception("unhandled error serving video=%s acc=%s", video, acc)
            return PlainTextResponse(f"Error: {exc}", status_code=500)

    @router.get("/metrics", include_in_schema=False)
    async def _metrics_endpoint(request: Request):
        return await metrics_app(request)

    router.add_api_route(
        "/health",
        _health_handler,
        methods=["GET"],
        response_model=None,
        tags=["health"],
    )

    app.include_router(router)
    return app


app = create_app()
