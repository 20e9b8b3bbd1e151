"""
LightningPages server shell.

Wires the FastAPI app (security headers, compression, static files, CDN
redirects, tag manager proxy) to the asset pipeline:

    LightningPages(options)
      1. subscribes the stylesheet watcher,
      2. subscribes the image tree watcher and queues the startup sweep,
      3. loads the stylesheet once.

Entry points:
    lightning-pages                      (console script, env-configured)
    python -m lightning_pages.web.main
    uvicorn --factory lightning_pages.web.main:create_app
"""
from __future__ import annotations

import logging
import os
import socket
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.gzip import GZipMiddleware
from starlette.routing import Mount

from lightning_pages import __version__
from lightning_pages.images.publisher import AssetPublisher
from lightning_pages.images.transcode import ImageTranscoder
from lightning_pages.storage.config import CdnConfig, load_cdn_config
from lightning_pages.storage.ports import ObjectStoreProtocol
from lightning_pages.storage.spaces import build_object_store
from lightning_pages.watch.stylesheet import StylesheetCache, StylesheetWatcher
from lightning_pages.watch.tree import ImageTreeWatcher

from .config import PagesOptions, resolve_port, should_load_dotenv
from .routes.cdn import CdnRedirectMiddleware, build_cdn_router
from .routes.css import build_css_router
from .routes.proxy import build_tag_manager_router
from .security import SecurityHeadersMiddleware, build_csp

logger = logging.getLogger("lightning.web")

STATIC_MOUNT_NAME = "public"

_UNSET: Any = object()


class LightningPages:
    """FastAPI app plus the stylesheet cache and image pipeline it serves."""

    def __init__(
        self,
        options: Optional[PagesOptions] = None,
        *,
        store: Optional[ObjectStoreProtocol] = _UNSET,
        transcoder: Optional[ImageTranscoder] = None,
    ):
        self.options = options or PagesOptions()
        opts = self.options

        self.cdn_config: Optional[CdnConfig] = load_cdn_config(opts.cdn_base_url)
        if store is _UNSET:
            store = build_object_store(self.cdn_config)
        self.store = store
        if self.store is not None:
            logger.info("cdn configured; mirroring images to the object store")
        else:
            logger.info("cdn not available; images are served locally only")

        self.port = resolve_port(opts.port)
        self.publisher = AssetPublisher(
            self.store,
            transcoder,
            retract_derivatives=opts.retract_derivatives,
        )
        self.stylesheets = StylesheetCache(opts.stylesheet_path)
        self.stylesheet_watcher = StylesheetWatcher(self.stylesheets, delay=opts.debounce_seconds)
        self.image_watcher = ImageTreeWatcher(opts.images_dir, self.publisher, workers=opts.image_workers)

        self._app = self._build_app()

        if opts.watch_files:
            self.stylesheet_watcher.start()
            self.image_watcher.start()
        self.stylesheets.refresh()

    # --- App assembly ---------------------------------------------------------

    @property
    def app(self) -> FastAPI:
        return self._app

    @property
    def cdn_base_url(self) -> Optional[str]:
        return self.cdn_config.base_url if self.cdn_config else None

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        yield
        self.close()

    def _build_app(self) -> FastAPI:
        opts = self.options
        app = FastAPI(title="Lightning Pages", version=__version__, lifespan=self._lifespan)

        # Middleware added last runs first: gzip wraps headers wraps CDN redirects.
        if self.cdn_config is not None:
            app.add_middleware(CdnRedirectMiddleware, config=self.cdn_config)
        app.add_middleware(
            SecurityHeadersMiddleware,
            csp=build_csp(opts.script_sources, opts.img_sources, opts.connect_sources),
            production=opts.production,
        )
        app.add_middleware(GZipMiddleware, minimum_size=opts.compression_min_size)

        app.include_router(build_css_router(self.stylesheets))
        if self.cdn_config is not None:
            app.include_router(build_cdn_router(self.cdn_config))
        if opts.tag_manager_url:
            app.include_router(build_tag_manager_router(opts.tag_manager_url))

        if opts.public_dir.is_dir():
            app.mount("/", StaticFiles(directory=str(opts.public_dir)), name=STATIC_MOUNT_NAME)
        else:
            logger.warning("public directory missing, static files disabled: %s", opts.public_dir)
        return app

    def _keep_static_last(self) -> None:
        # The "/" mount matches every path, so page routes must precede it.
        routes = self._app.router.routes
        mounts = [r for r in routes if isinstance(r, Mount) and r.name == STATIC_MOUNT_NAME]
        for mount in mounts:
            routes.remove(mount)
            routes.append(mount)

    # --- Public API -------------------------------------------------------------

    def page(self, url: str, handler: Callable[..., Any]) -> None:
        """Register a GET page handler ahead of the static file mount."""
        self._app.add_api_route(url, handler, methods=["GET"])
        self._keep_static_last()

    def get_page_css(self) -> str:
        """Cached global stylesheet for inlining into pages (never reads disk)."""
        return self.stylesheets.get()

    def start(self, port: Optional[int] = None) -> None:
        """Bind and serve until interrupted; exit with status 1 if binding fails."""
        port = int(port) if port else self.port
        host = self.options.host
        try:
            sock = socket.create_server((host, port))
        except OSError as exc:
            logger.error("cannot listen on %s:%s: %s", host, port, exc)
            self.close()
            raise SystemExit(1) from exc

        server = uvicorn.Server(uvicorn.Config(self._app, host=host, port=port))
        logger.info("server listening on %s", sock.getsockname()[1])
        try:
            server.run(sockets=[sock])
        finally:
            sock.close()
            self.close()

    def close(self) -> None:
        """Release watcher subscriptions and stop the publish workers."""
        self.stylesheet_watcher.stop()
        self.image_watcher.stop()


def create_app() -> FastAPI:
    """App factory configured from the environment (for `uvicorn --factory`)."""
    return LightningPages(PagesOptions.from_env()).app


def main() -> None:
    """CLI entrypoint for the server."""
    if should_load_dotenv():
        from dotenv import load_dotenv

        load_dotenv()
    level_name = os.getenv("LOG_LEVEL", "INFO")
    logging.basicConfig(level=level_name.strip().upper() or "INFO")
    LightningPages(PagesOptions.from_env()).start()


__all__ = ["LightningPages", "create_app", "main"]


if __name__ == "__main__":
    main()
