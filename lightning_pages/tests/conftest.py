"""
Pytest configuration for lightning_pages tests.

Why: Force AnyIO to use the asyncio backend and keep every test independent
of the developer's CDN credentials and proxy settings.
"""
import sys
from pathlib import Path

import pytest

# Ensure the repo root and the test helpers are importable without installation
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = Path(__file__).resolve().parent
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

_ISOLATED_ENV = (
    "CDN_REGION",
    "CDN_ACCESS_KEY",
    "CDN_ACCESS_SECRET",
    "CDN_BUCKET_NAME",
    "CDN_BASE_URL",
    "CDN_ENDPOINT_URL",
    "CDN_RETRACT_DERIVATIVES",
    "SGTM_URL",
    "PORT",
    "HOST",
    "IMAGE_WORKERS",
    "LIGHTNING_ENV",
    "PROJECT_ROOT",
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_lightning_env(monkeypatch: pytest.MonkeyPatch):
    """Remove CDN/proxy settings so no test talks to a real bucket by accident."""
    for name in _ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def cdn_env(monkeypatch: pytest.MonkeyPatch):
    """Provide a complete (fake) CDN configuration."""
    monkeypatch.setenv("CDN_REGION", "fra1")
    monkeypatch.setenv("CDN_ACCESS_KEY", "test-access")
    monkeypatch.setenv("CDN_ACCESS_SECRET", "test-secret")
    monkeypatch.setenv("CDN_BUCKET_NAME", "site-assets")


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """A project root with empty public/css and public/images directories."""
    (tmp_path / "public" / "css").mkdir(parents=True)
    (tmp_path / "public" / "images").mkdir(parents=True)
    return tmp_path
