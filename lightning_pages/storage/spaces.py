"""
S3-compatible object store adapter (DigitalOcean Spaces by default).

This adapter implements ObjectStoreProtocol with a boto3 S3 client. The
client can be injected, which keeps tests free of network access; the only
methods used are:

- put_object(Bucket=..., Key=..., Body=..., ACL=..., CacheControl=..., ContentType=...)
- delete_object(Bucket=..., Key=...)

Security:
- Objects are written public-read: everything mirrored here is already served
  from the public/ directory.
- Credentials come from CdnConfig and are passed to the client only.
"""
from __future__ import annotations

import logging
import mimetypes
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import LONG_LIVED_CACHE_CONTROL, PUBLIC_READ_ACL, CdnConfig
from .ports import DeleteError, ObjectStoreProtocol, UploadError

logger = logging.getLogger("lightning.storage")

# Bound worst-case latency at the adapter boundary; the pipeline has no timeouts.
CONNECT_TIMEOUT_SECONDS = 5
READ_TIMEOUT_SECONDS = 30
MAX_ATTEMPTS = 3


def _build_client(config: CdnConfig) -> Any:
    return boto3.client(
        "s3",
        endpoint_url=config.endpoint_url,
        region_name=config.region,
        aws_access_key_id=config.access_key,
        aws_secret_access_key=config.secret_key,
        config=BotoConfig(
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=READ_TIMEOUT_SECONDS,
            retries={"max_attempts": MAX_ATTEMPTS, "mode": "standard"},
        ),
    )


def _normalize_key(key: str) -> str:
    return key[1:] if key.startswith("/") else key


class SpacesObjectStore(ObjectStoreProtocol):
    """Object store backed by a Spaces/S3 bucket."""

    def __init__(self, config: CdnConfig, client: Optional[Any] = None):
        self._config = config
        self._client = client if client is not None else _build_client(config)

    @property
    def bucket(self) -> str:
        return self._config.bucket

    def upload(self, body: bytes, key: str) -> str:
        """Upload a full byte buffer under `key`, public-read with a year-long cache.

        Raises:
            UploadError wrapping the SDK error. Returns the stored key.
        """
        norm_key = _normalize_key(key)
        content_type, _ = mimetypes.guess_type(norm_key)
        params = {
            "Bucket": self._config.bucket,
            "Key": norm_key,
            "Body": body,
            "ACL": PUBLIC_READ_ACL,
            "CacheControl": LONG_LIVED_CACHE_CONTROL,
            "ContentType": content_type or "application/octet-stream",
        }
        try:
            self._client.put_object(**params)
        except (BotoCoreError, ClientError) as exc:
            raise UploadError(norm_key, f"{exc.__class__.__name__}: {exc}") from exc
        return norm_key

    def delete(self, key: str) -> None:
        norm_key = _normalize_key(key)
        try:
            self._client.delete_object(Bucket=self._config.bucket, Key=norm_key)
        except (BotoCoreError, ClientError) as exc:
            raise DeleteError(norm_key, f"{exc.__class__.__name__}: {exc}") from exc


def build_object_store(config: Optional[CdnConfig]) -> Optional[SpacesObjectStore]:
    """Return a store for `config`, or None when the CDN is not configured."""
    if config is None:
        return None
    logger.debug("object store bucket=%s endpoint=%s", config.bucket, config.endpoint_url)
    return SpacesObjectStore(config)


__all__ = ["SpacesObjectStore", "build_object_store"]
