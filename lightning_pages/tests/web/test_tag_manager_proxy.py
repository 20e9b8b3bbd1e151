"""
Tag manager passthrough: /s-g-t-m/* forwarded to the upstream container.

Expected:
  - The prefix is stripped and the query string kept.
  - Method, body and status are relayed; hop-by-hop headers are not.
  - An unreachable upstream yields 502 instead of an unhandled error.
"""
from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport

from lightning_pages.web.routes.proxy import build_tag_manager_router, upstream_url_for

UPSTREAM = "https://sgtm.example.com"


def _app(handler) -> FastAPI:
    app = FastAPI()
    app.include_router(build_tag_manager_router(UPSTREAM, transport=httpx.MockTransport(handler)))
    return app


def test_upstream_url_mapping():
    assert upstream_url_for(UPSTREAM, "/s-g-t-m/g/collect", "v=2&tid=G-1") == (
        "https://sgtm.example.com/g/collect?v=2&tid=G-1"
    )
    assert upstream_url_for(UPSTREAM + "/", "/s-g-t-m/gtm.js") == "https://sgtm.example.com/gtm.js"


@pytest.mark.anyio
async def test_request_is_forwarded_and_response_relayed():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204, headers={"content-type": "text/plain"})

    async with httpx.AsyncClient(transport=ASGITransport(app=_app(handler)), base_url="http://test") as client:
        resp = await client.post("/s-g-t-m/g/collect?v=2", content=b"en=page_view", headers={"x-client": "1"})

    assert resp.status_code == 204
    (upstream_req,) = seen
    assert upstream_req.method == "POST"
    assert str(upstream_req.url) == "https://sgtm.example.com/g/collect?v=2"
    assert upstream_req.content == b"en=page_view"
    assert upstream_req.headers["x-client"] == "1"
    assert upstream_req.headers["host"] == "sgtm.example.com"


@pytest.mark.anyio
async def test_body_and_content_type_are_returned():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"console.log(1)", headers={"content-type": "application/javascript"})

    async with httpx.AsyncClient(transport=ASGITransport(app=_app(handler)), base_url="http://test") as client:
        resp = await client.get("/s-g-t-m/gtm.js?id=GTM-X")

    assert resp.status_code == 200
    assert resp.content == b"console.log(1)"
    assert resp.headers["content-type"].startswith("application/javascript")


@pytest.mark.anyio
async def test_unreachable_upstream_returns_502():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=ASGITransport(app=_app(handler)), base_url="http://test") as client:
        resp = await client.get("/s-g-t-m/g/collect")

    assert resp.status_code == 502
    assert resp.json() == {"error": "upstream_unavailable"}
