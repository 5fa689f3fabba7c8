import httpx
import pytest
from fastapi.testclient import TestClient

from path_router.app_proxy.executor import ProxyExecutor
from path_router.routing import load_route_table
from path_router.server import create_app

ROUTES = {
    "/starlight-plugin-icons/*": "proxy:http://localhost:4321/*",
    "/docs/*": "302:https://docs.example/*",
}


def upstream(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/fail":
        raise httpx.ConnectError("upstream down", request=request)
    if request.url.path.endswith(".svg"):
        return httpx.Response(
            200, headers={"content-type": "image/svg+xml"}, content=b"<svg/>"
        )
    return httpx.Response(
        200,
        headers={"content-type": "text/html"},
        content=(
            b"<html><head><link rel=\"stylesheet\" href=\"/style.css\"></head>"
            b"<body><a href=\"http://localhost:4321/guide/\">Guide</a></body></html>"
        ),
    )


@pytest.fixture
def client():
    app = create_app(
        load_route_table(ROUTES),
        ProxyExecutor(timeout=5, transport=httpx.MockTransport(upstream)),
    )
    with TestClient(app, base_url="https://original.example") as client:
        yield client


def test_unmatched_path_is_404(client):
    r = client.get("/elsewhere")
    assert r.status_code == 404, f"Expected 404, got {r.status_code}, {r.text}"
    assert r.text == "Not found"


def test_redirect(client):
    r = client.get("/docs/intro?lang=en", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "https://docs.example/intro?lang=en"


def test_proxied_html_is_rewritten(client):
    r = client.get("/starlight-plugin-icons/")
    assert r.status_code == 200
    assert r.headers["cache-control"] == "no-cache"
    assert r.text == (
        '<html><head><base href="/starlight-plugin-icons/">'
        '<link rel="stylesheet" href="/starlight-plugin-icons/style.css"></head>'
        '<body><a href="https://original.example/starlight-plugin-icons/guide/">Guide</a>'
        "</body></html>"
    )


def test_proxied_asset(client):
    r = client.get("/starlight-plugin-icons/icons/star.svg")
    assert r.status_code == 200
    assert r.content == b"<svg/>"
    assert r.headers["cache-control"] == "public, max-age=31536000"


def test_post_is_proxied(client):
    r = client.post("/starlight-plugin-icons/icons/upload.svg", content=b"data")
    assert r.status_code == 200


def test_upstream_failure_is_500(client):
    r = client.get("/starlight-plugin-icons/fail")
    assert r.status_code == 500
    assert r.text == "Error: upstream down"
