"""Stylesheet cache endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from lightning_pages.watch.stylesheet import StylesheetCache


def build_css_router(cache: StylesheetCache) -> APIRouter:
    """Return a router bound to `cache` (no module-level cache state)."""
    router = APIRouter(tags=["CSS"])

    @router.get("/css/cache/bust", response_class=PlainTextResponse)
    def bust_css_cache() -> PlainTextResponse:
        """
        Force a stylesheet refresh and acknowledge with `OK!`.

        Runs in the threadpool: the refresh may read the file from disk.
        Idempotent; an unchanged file costs one stat.
        """
        cache.refresh()
        return PlainTextResponse("OK!")

    return router


__all__ = ["build_css_router"]
