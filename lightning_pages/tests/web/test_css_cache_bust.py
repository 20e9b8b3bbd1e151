"""
Stylesheet endpoints: cache bust and inline access.

Expected:
  - GET /css/cache/bust re-reads a changed stylesheet and answers "OK!".
  - get_page_css() serves the cached text without touching disk.
  - A missing stylesheet is not fatal: the server starts and serves "".
"""
from __future__ import annotations

import os
from pathlib import Path

import httpx
import pytest
from httpx import ASGITransport

from lightning_pages.web.config import PagesOptions
from lightning_pages.web.main import LightningPages


def _pages(root: Path) -> LightningPages:
    return LightningPages(PagesOptions(project_root=root, watch_files=False), store=None)


@pytest.mark.anyio
async def test_cache_bust_picks_up_new_content(site_root: Path):
    # Arrange
    css = site_root / "public" / "css" / "style.css"
    css.write_text("h1 { margin: 0; }", encoding="utf-8")
    pages = _pages(site_root)
    assert pages.get_page_css() == "h1 { margin: 0; }"

    css.write_text("h1 { margin: 1rem; }", encoding="utf-8")
    st = css.stat()
    os.utime(css, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))
    assert pages.get_page_css() == "h1 { margin: 0; }"

    # Act
    async with httpx.AsyncClient(transport=ASGITransport(app=pages.app), base_url="http://test") as client:
        resp = await client.get("/css/cache/bust")

    # Assert
    assert resp.status_code == 200
    assert resp.text == "OK!"
    assert pages.get_page_css() == "h1 { margin: 1rem; }"


@pytest.mark.anyio
async def test_missing_stylesheet_is_not_fatal(site_root: Path):
    pages = _pages(site_root)
    assert pages.get_page_css() == ""

    async with httpx.AsyncClient(transport=ASGITransport(app=pages.app), base_url="http://test") as client:
        resp = await client.get("/css/cache/bust")

    assert resp.status_code == 200
    assert resp.text == "OK!"
    assert pages.get_page_css() == ""


def test_server_without_public_dir_still_constructs(tmp_path: Path):
    pages = _pages(tmp_path)
    assert pages.get_page_css() == ""
    assert pages.store is None
