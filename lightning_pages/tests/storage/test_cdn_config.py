"""
CDN configuration from the environment.

Expected:
  - All four credentials are required; any missing one disables the CDN.
  - Base URL: explicit argument > CDN_BASE_URL > derived Spaces URL.
  - The secret never appears in the repr.
"""
from __future__ import annotations

import pytest

from lightning_pages.storage.config import load_cdn_config, retract_derivatives_enabled
from lightning_pages.storage.spaces import build_object_store


def test_complete_env_yields_spaces_defaults(cdn_env):
    cfg = load_cdn_config()
    assert cfg is not None
    assert cfg.bucket == "site-assets"
    assert cfg.base_url == "https://site-assets.fra1.digitaloceanspaces.com"
    assert cfg.endpoint_url == "https://fra1.digitaloceanspaces.com"
    assert cfg.public_url("/images/a.png") == "https://site-assets.fra1.digitaloceanspaces.com/images/a.png"
    assert "test-secret" not in repr(cfg)


@pytest.mark.parametrize("missing", ["CDN_REGION", "CDN_ACCESS_KEY", "CDN_ACCESS_SECRET", "CDN_BUCKET_NAME"])
def test_any_missing_credential_disables_cdn(cdn_env, monkeypatch, missing):
    monkeypatch.delenv(missing)
    assert load_cdn_config() is None
    assert build_object_store(load_cdn_config()) is None


def test_blank_credential_counts_as_missing(cdn_env, monkeypatch):
    monkeypatch.setenv("CDN_ACCESS_SECRET", "   ")
    assert load_cdn_config() is None


def test_base_url_precedence(cdn_env, monkeypatch):
    monkeypatch.setenv("CDN_BASE_URL", "https://cdn.example.com/")
    assert load_cdn_config().base_url == "https://cdn.example.com"
    assert load_cdn_config("https://assets.example.org").base_url == "https://assets.example.org"


def test_endpoint_override(cdn_env, monkeypatch):
    monkeypatch.setenv("CDN_ENDPOINT_URL", "http://127.0.0.1:9000")
    assert load_cdn_config().endpoint_url == "http://127.0.0.1:9000"


def test_retract_derivatives_flag(monkeypatch):
    assert retract_derivatives_enabled() is False
    monkeypatch.setenv("CDN_RETRACT_DERIVATIVES", "true")
    assert retract_derivatives_enabled() is True


def test_public_url_joins_base_and_key(cdn_env):
    cfg = load_cdn_config("https://cdn.example.com/")
    assert cfg.public_url("images/a.webp") == "https://cdn.example.com/images/a.webp"
    assert cfg.public_url("/images/a.webp") == "https://cdn.example.com/images/a.webp"
