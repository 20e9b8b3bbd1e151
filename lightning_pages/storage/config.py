"""
Centralized CDN configuration for the object store.

Intent:
    Provide a single source of truth for the DigitalOcean Spaces (or other
    S3-compatible) settings read from the environment, so the web shell and
    the publisher agree on whether the CDN is available at all.

Behavior:
    - load_cdn_config() returns None unless CDN_REGION, CDN_ACCESS_KEY,
      CDN_ACCESS_SECRET and CDN_BUCKET_NAME are all set (non-blank).
    - CDN_BASE_URL overrides the public base URL; otherwise it is derived from
      bucket and region.
    - CDN_ENDPOINT_URL overrides the API endpoint for non-Spaces backends.

Permissions:
    Pure configuration; no external calls. The secret never leaves this
    object except towards the SDK client.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

PUBLIC_READ_ACL = "public-read"
LONG_LIVED_CACHE_CONTROL = "max-age=31536000"

_REQUIRED_ENV = ("CDN_REGION", "CDN_ACCESS_KEY", "CDN_ACCESS_SECRET", "CDN_BUCKET_NAME")

logger = logging.getLogger("lightning.storage")


def _env(name: str) -> str:
    return (os.getenv(name) or "").strip()


def default_base_url(bucket: str, region: str) -> str:
    """Public URL of a Spaces bucket: https://{bucket}.{region}.digitaloceanspaces.com"""
    return f"https://{bucket}.{region}.digitaloceanspaces.com"


def default_endpoint_url(region: str) -> str:
    return f"https://{region}.digitaloceanspaces.com"


@dataclass(frozen=True)
class CdnConfig:
    region: str
    access_key: str
    secret_key: str = field(repr=False)
    bucket: str
    base_url: str
    endpoint_url: str

    def public_url(self, key: str) -> str:
        """Return the public URL under which `key` is served."""
        return f"{self.base_url.rstrip('/')}/{key.lstrip('/')}"


def load_cdn_config(base_url: Optional[str] = None) -> Optional[CdnConfig]:
    """Return the configured CDN settings, or None when any credential is missing.

    Parameters:
        base_url: explicit public base URL (e.g. from server options); wins
            over CDN_BASE_URL and the derived Spaces URL.
    """
    values = {name: _env(name) for name in _REQUIRED_ENV}
    missing = [name for name, value in values.items() if not value]
    if missing:
        if len(missing) < len(values):
            logger.warning("cdn partially configured; missing %s", ", ".join(missing))
        return None
    region = values["CDN_REGION"]
    bucket = values["CDN_BUCKET_NAME"]
    resolved_base = (base_url or "").strip() or _env("CDN_BASE_URL") or default_base_url(bucket, region)
    return CdnConfig(
        region=region,
        access_key=values["CDN_ACCESS_KEY"],
        secret_key=values["CDN_ACCESS_SECRET"],
        bucket=bucket,
        base_url=resolved_base.rstrip("/"),
        endpoint_url=_env("CDN_ENDPOINT_URL") or default_endpoint_url(region),
    )


def retract_derivatives_enabled() -> bool:
    """Whether removing an original also deletes its WebP copy (CDN_RETRACT_DERIVATIVES)."""
    return _env("CDN_RETRACT_DERIVATIVES").lower() in ("1", "true", "yes")


__all__ = [
    "PUBLIC_READ_ACL",
    "LONG_LIVED_CACHE_CONTROL",
    "CdnConfig",
    "default_base_url",
    "default_endpoint_url",
    "load_cdn_config",
    "retract_derivatives_enabled",
]
