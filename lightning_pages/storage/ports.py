"""
Object store ports used by the image pipeline.

Keep these small and framework-agnostic so tests can supply simple fakes.
"""
from __future__ import annotations

from typing import Protocol


class ObjectStoreError(Exception):
    """Base class for remote object store failures."""

    def __init__(self, key: str, detail: str = "") -> None:
        self.key = key
        self.detail = detail
        super().__init__(f"{key}: {detail}" if detail else key)


class UploadError(ObjectStoreError):
    """Uploading an object failed; the remote copy may be missing or stale."""


class DeleteError(ObjectStoreError):
    """Deleting an object failed; the remote copy may still exist."""


class ObjectStoreProtocol(Protocol):
    """Minimal interface to write and remove public objects in a bucket.

    Intent:
        Allow the publisher to mirror local assets without depending on a
        specific cloud SDK.

    Contract:
        - upload() stores the full byte buffer under `key` and returns the key.
        - delete() removes `key`; deleting a missing key is not an error.
        - Failures raise UploadError / DeleteError, never SDK exceptions.
    """

    def upload(self, body: bytes, key: str) -> str: ...

    def delete(self, key: str) -> None: ...


__all__ = [
    "ObjectStoreError",
    "UploadError",
    "DeleteError",
    "ObjectStoreProtocol",
]
