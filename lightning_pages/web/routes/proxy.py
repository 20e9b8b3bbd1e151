"""
Server-side tag manager passthrough.

Requests to `/s-g-t-m/...` are forwarded to SGTM_URL with the prefix removed,
so tracking calls stay first-party. Only registered when SGTM_URL is set.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

TAG_MANAGER_PREFIX = "/s-g-t-m"
DEFAULT_TIMEOUT_SECONDS = 10.0

_SKIP_REQUEST_HEADERS = {
    "host",
    "content-length",
    "connection",
    "keep-alive",
    "transfer-encoding",
    "upgrade",
    "proxy-authorization",
    "te",
    "trailer",
}

logger = logging.getLogger("lightning.web")


def upstream_url_for(upstream: str, path: str, query: str = "") -> str:
    """Map `/s-g-t-m/g/collect?v=2` onto `{upstream}/g/collect?v=2`."""
    rest = path[len(TAG_MANAGER_PREFIX):] if path.startswith(TAG_MANAGER_PREFIX) else path
    url = upstream.rstrip("/") + rest
    return f"{url}?{query}" if query else url


def build_tag_manager_router(
    upstream: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> APIRouter:
    """Return a router forwarding every method under the tag manager prefix.

    Parameters:
        transport: optional httpx transport (tests use httpx.MockTransport).
    """
    router = APIRouter(tags=["Tag manager"])

    @router.api_route(
        TAG_MANAGER_PREFIX + "/{rest:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    )
    async def forward_to_tag_manager(request: Request, rest: str) -> Response:
        url = upstream_url_for(upstream, request.url.path, request.url.query)
        headers = {k: v for k, v in request.headers.items() if k.lower() not in _SKIP_REQUEST_HEADERS}
        body = await request.body()
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                upstream_resp = await client.request(request.method, url, headers=headers, content=body or None)
        except httpx.HTTPError as exc:
            logger.warning("tag manager upstream failed url=%s error=%s", url, exc.__class__.__name__)
            return JSONResponse({"error": "upstream_unavailable"}, status_code=502)
        return Response(
            content=upstream_resp.content,
            status_code=upstream_resp.status_code,
            media_type=upstream_resp.headers.get("content-type") or "text/plain",
        )

    return router


__all__ = ["TAG_MANAGER_PREFIX", "upstream_url_for", "build_tag_manager_router"]
