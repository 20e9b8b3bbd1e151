"""
CDN redirects for mirrored assets.

Only registered when the object store is configured:
- `GET /cdn/{path}` always redirects to the public URL of `{path}`.
- Requests for files below a mirrored prefix (default `/images/`) are sent to
  the CDN copy. Everything else keeps being served locally by the static mount.
"""
from __future__ import annotations

import re
from typing import Iterable, Tuple

from fastapi import APIRouter
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from lightning_pages.storage.config import CdnConfig

CDN_ROUTE_PREFIX = "/cdn/"
DEFAULT_MIRRORED_PREFIXES: Tuple[str, ...] = ("/images/",)

_FILE_EXTENSION_RE = re.compile(r"\.\w+$")


def build_cdn_router(config: CdnConfig) -> APIRouter:
    router = APIRouter(tags=["CDN"])

    @router.get(CDN_ROUTE_PREFIX + "{asset_path:path}")
    async def redirect_to_cdn(asset_path: str) -> RedirectResponse:
        return RedirectResponse(config.public_url(asset_path), status_code=302)

    return router


def wants_cdn(path: str, prefixes: Iterable[str] = DEFAULT_MIRRORED_PREFIXES) -> bool:
    """True for file requests (with an extension, not .ico) under a mirrored prefix."""
    if path.startswith(CDN_ROUTE_PREFIX) or path.endswith(".ico"):
        return False
    if not _FILE_EXTENSION_RE.search(path):
        return False
    return any(path.startswith(prefix) for prefix in prefixes)


class CdnRedirectMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, config: CdnConfig, prefixes: Iterable[str] = DEFAULT_MIRRORED_PREFIXES):
        super().__init__(app)
        self._config = config
        self._prefixes = tuple(prefixes)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if request.method in ("GET", "HEAD") and wants_cdn(path, self._prefixes):
            target = self._config.public_url(path)
            if request.url.query:
                target = f"{target}?{request.url.query}"
            return RedirectResponse(target, status_code=302)
        return await call_next(request)


__all__ = [
    "CDN_ROUTE_PREFIX",
    "DEFAULT_MIRRORED_PREFIXES",
    "build_cdn_router",
    "wants_cdn",
    "CdnRedirectMiddleware",
]
