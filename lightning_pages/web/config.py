"""
Server options and environment handling for the web shell.

Why: The server is embedded by site projects that pass a few options in code
and leave the rest (port, CDN credentials, proxy target) to the environment.
This module turns both into one `PagesOptions` value.

Permissions: Reads environment variables only.
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

DEFAULT_PORT = 8000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_STYLESHEET = "css/style.css"
DEFAULT_COMPRESSION_MIN_SIZE = 1024


def should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via LIGHTNING_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("LIGHTNING_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


def _parse_int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def is_production(env: Optional[str] = None) -> bool:
    value = (env if env is not None else os.getenv("LIGHTNING_ENV", "development")) or ""
    return value.strip().lower() in {"prod", "production"}


def resolve_port(port: Optional[int] = None) -> int:
    """Explicit port, else PORT from the environment, else 8000."""
    if port:
        return int(port)
    return _parse_int_env("PORT", DEFAULT_PORT)


@dataclass
class PagesOptions:
    project_root: Path = field(default_factory=Path.cwd)
    port: Optional[int] = None
    host: str = DEFAULT_HOST
    cdn_base_url: Optional[str] = None
    script_sources: List[str] = field(default_factory=list)
    img_sources: List[str] = field(default_factory=list)
    connect_sources: List[str] = field(default_factory=list)
    compression_min_size: int = DEFAULT_COMPRESSION_MIN_SIZE
    production: bool = False
    watch_files: bool = True
    stylesheet: str = DEFAULT_STYLESHEET
    debounce_seconds: float = 1.0
    tag_manager_url: Optional[str] = None
    image_workers: int = 1
    retract_derivatives: bool = False

    def __post_init__(self) -> None:
        self.project_root = Path(self.project_root)

    @property
    def public_dir(self) -> Path:
        return self.project_root / "public"

    @property
    def stylesheet_path(self) -> Path:
        return self.public_dir / self.stylesheet

    @property
    def images_dir(self) -> Path:
        return self.public_dir / "images"

    @classmethod
    def from_env(cls, **overrides) -> "PagesOptions":
        """Build options from the environment; keyword overrides win.

        Env:
            PROJECT_ROOT, PORT, HOST, CDN_BASE_URL, LIGHTNING_ENV, SGTM_URL,
            IMAGE_WORKERS, CDN_RETRACT_DERIVATIVES.
        """
        from lightning_pages.storage.config import retract_derivatives_enabled

        values = dict(
            project_root=Path(os.getenv("PROJECT_ROOT") or Path.cwd()),
            port=resolve_port(),
            host=(os.getenv("HOST") or DEFAULT_HOST).strip(),
            cdn_base_url=(os.getenv("CDN_BASE_URL") or "").strip() or None,
            production=is_production(),
            tag_manager_url=(os.getenv("SGTM_URL") or "").strip() or None,
            image_workers=_parse_int_env("IMAGE_WORKERS", 1),
            retract_derivatives=retract_derivatives_enabled(),
        )
        values.update(overrides)
        return cls(**values)


__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_HOST",
    "DEFAULT_STYLESHEET",
    "DEFAULT_COMPRESSION_MIN_SIZE",
    "PagesOptions",
    "should_load_dotenv",
    "is_production",
    "resolve_port",
]
