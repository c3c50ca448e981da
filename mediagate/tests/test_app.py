from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import httpx
from fastapi.testclient import TestClient

from mediagate.app import create_app
from mediagate.config import Settings

from .helpers import STORAGE_HOST_A, manifest_handler

MANIFEST = "#EXTM3U\n#EXTINF:10,\nsegment0.ts\n#EXTINF:10,\nsegment1.ts\n"


def test_ping_short_circuits_without_tenant(gateway_client: TestClient, mock_upstream):
    recorder = mock_upstream(manifest_handler(MANIFEST))

    response = gateway_client.get("/", params={"video": "ping"})

    assert response.status_code == 200
    assert response.text == "Pong!"
    assert recorder.requests == []


def test_ping_ignores_unknown_tenant(gateway_client: TestClient):
    response = gateway_client.get("/", params={"video": "ping", "acc": "nobody"})
    assert response.status_code == 200
    assert response.text == "Pong!"


def test_missing_or_unknown_parameters_are_400(gateway_client: TestClient, mock_upstream):
    recorder = mock_upstream(manifest_handler(MANIFEST))

    for params in (
        {},
        {"video": "hls/movie/master.m3u8"},
        {"acc": "acctA"},
        {"video": "", "acc": "acctA"},
        {"video": "hls/movie/master.m3u8", "acc": "nobody"},
    ):
        response = gateway_client.get("/", params=params)
        assert response.status_code == 400, params
        assert response.text == "Invalid Parameters"

    assert recorder.requests == []


def test_manifest_is_rewritten_end_to_end(gateway_client: TestClient, mock_upstream):
    recorder = mock_upstream(manifest_handler(MANIFEST))

    response = gateway_client.get(
        "/", params={"video": "hls/movie/master.m3u8", "acc": "acctA"}
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/vnd.apple.mpegurl"
    assert response.headers["access-control-allow-origin"] == "*"
    assert "no-store" in response.headers["cache-control"]

    lines = response.text.split("\n")
    assert len(lines) == len(MANIFEST.split("\n"))
    assert lines[0] == "#EXTM3U"
    assert lines[1] == lines[3] == "#EXTINF:10,"
    for line, name in ((lines[2], "segment0.ts"), (lines[4], "segment1.ts")):
        parsed = urlsplit(line)
        assert parsed.netloc == STORAGE_HOST_A
        assert parsed.path == f"/movies-a/hls/movie/{name}"
        assert parse_qs(parsed.query)["X-Amz-Credential"][0].startswith("AKIDEXAMPLEA/")

    assert [request.url.path for request in recorder.requests] == [
        "/movies-a/hls/movie/master.m3u8"
    ]


def test_tenant_selects_credentials(gateway_client: TestClient, mock_upstream):
    recorder = mock_upstream(manifest_handler(MANIFEST))

    response = gateway_client.get(
        "/", params={"video": "hls/movie/master.m3u8", "acc": "acctB"}
    )

    assert response.status_code == 200
    assert recorder.requests[0].url.host == "acct456.r2.cloudflarestorage.com"
    segment = urlsplit(response.text.split("\n")[2])
    assert segment.path == "/movies-b/hls/movie/segment0.ts"
    assert parse_qs(segment.query)["X-Amz-Credential"][0].startswith("AKIDEXAMPLEB/")


def test_missing_manifest_is_404(gateway_client: TestClient, mock_upstream):
    mock_upstream(manifest_handler("NoSuchKey", status_code=404))

    response = gateway_client.get(
        "/", params={"video": "hls/movie/master.m3u8", "acc": "acctA"}
    )

    assert response.status_code == 404
    assert "#EXTM3U" not in response.text
    assert "X-Amz" not in response.text


def test_asset_get_redirects(gateway_client: TestClient):
    response = gateway_client.get(
        "/",
        params={"video": "films/My Film.mp4", "acc": "acctA"},
        follow_redirects=False,
    )

    assert response.status_code == 307
    location = urlsplit(response.headers["location"])
    assert location.netloc == STORAGE_HOST_A
    assert location.path == "/movies-a/films/My%20Film.mp4"
    assert parse_qs(location.query)["X-Amz-Expires"] == ["3600"]


def test_asset_head_mirrors_backend(gateway_client: TestClient, mock_upstream):
    mock_upstream(
        lambda request: httpx.Response(
            200, headers={"Content-Length": "1024", "Content-Type": "video/mp4"}
        )
    )

    response = gateway_client.head("/", params={"video": "films/a.mp4", "acc": "acctA"})

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["content-length"] == "1024"
    assert response.headers["content-type"] == "video/mp4"
    assert response.headers["access-control-allow-origin"] == "*"


def test_unsupported_method_is_405(gateway_client: TestClient):
    response = gateway_client.post("/", params={"video": "films/a.mp4", "acc": "acctA"})
    assert response.status_code == 405


def test_missing_configuration_fails_every_request(mock_upstream):
    recorder = mock_upstream(manifest_handler(MANIFEST))
    app = create_app(settings=Settings(ACCOUNTS_JSON=None))
    client = TestClient(app)

    for params in ({"video": "ping"}, {"video": "a.mp4", "acc": "acctA"}):
        response = client.get("/", params=params, follow_redirects=False)
        assert response.status_code == 500
        assert response.text == "Config Error"

    assert recorder.requests == []
    assert client.get("/health").json()["config"] == {"loaded": False, "accounts": 0}


def test_malformed_tenant_entry_is_config_error():
    app = create_app(settings=Settings(ACCOUNTS_JSON='{"acctA": {"accountId": "x"}}'))
    response = TestClient(app).get("/", params={"video": "a.mp4", "acc": "acctA"})
    assert response.status_code == 500
    assert response.text == "Config Error"


def test_unexpected_errors_become_500(gateway_client: TestClient, monkeypatch):
    from mediagate.services import assets

    async def explode(self, object_path):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(assets.AssetResponder, "_redirect", explode)

    response = gateway_client.get(
        "/", params={"video": "a.mp4", "acc": "acctA"}, follow_redirects=False
    )

    assert response.status_code == 500
    assert response.text == "Error: kaboom"


def test_health_and_metrics(gateway_client: TestClient):
    health = gateway_client.get("/health").json()
    assert health["status"] == "ok"
    assert health["config"] == {"loaded": True, "accounts": 2}

    gateway_client.get("/", params={"video": "ping"})
    metrics = gateway_client.get("/metrics")
    assert metrics.status_code == 200
    assert "requests_total" in metrics.text


def test_request_metrics_are_labelled_by_route(gateway_client: TestClient):
    gateway_client.get("/", params={"video": "ping"})
    gateway_client.get("/health")
    gateway_client.get("/no/such/path/123")

    text = gateway_client.get("/metrics").text

    assert 'path="/"' in text
    assert 'path="/health"' in text
    assert 'path="unmatched"' in text
    assert "/no/such/path/123" not in text


def test_head_with_backend_cors_header_has_single_origin(
    gateway_client: TestClient, mock_upstream
):
    mock_upstream(
        lambda request: httpx.Response(
            200, headers={"Access-Control-Allow-Origin": "https://a.example"}
        )
    )

    response = gateway_client.head("/", params={"video": "films/a.mp4", "acc": "acctA"})

    assert response.headers.get_list("access-control-allow-origin") == ["*"]


def test_invalid_log_level_does_not_break_startup(settings: Settings):
    bad = settings.model_copy(update={"log_level": "LOUD"})

    client = TestClient(create_app(settings=bad))

    assert client.get("/", params={"video": "ping"}).text == "Pong!"
