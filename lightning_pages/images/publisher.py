"""
Asset publisher: keeps the local image tree and the CDN bucket convergent.

Intent:
    Turn one filesystem fact ("this file exists now" / "this file is gone")
    into the matching remote commands:
      1. publish(): transcode a supported raster to WebP, then upload the
         original and the derivative under their asset keys.
      2. retract(): delete the remote object for a removed path.
      3. reconcile_tree(): publish every file already present at startup.

Design:
    - Stages return values (TranscodeResult, StoreOutcome); this module is the
      only place that decides what gets logged.
    - publish()/retract() never raise. They run on watcher worker threads
      where nobody could receive the error.
    - A failed transcode aborts the publish: the original is only mirrored
      together with its WebP copy.
    - Without a store (CDN not configured) transcoding still happens but no
      remote call is made.
    - retract() deletes only the original's key unless `retract_derivatives`
      is enabled; the remote WebP copy is otherwise left in place.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from lightning_pages.storage.keys import DEFAULT_ROOT_SEGMENT, AssetKeyError, make_asset_key
from lightning_pages.storage.ports import DeleteError, ObjectStoreProtocol, UploadError

from .transcode import FAILED, ImageTranscoder, TranscodeResult, is_supported_image

LOG = logging.getLogger("lightning.images")

UPLOAD = "upload"
DELETE = "delete"


@dataclass(frozen=True)
class StoreOutcome:
    """Result of a single upload or delete attempt."""

    action: str
    key: Optional[str]
    ok: bool
    detail: Optional[str] = None


@dataclass
class PublishReport:
    path: Path
    transcode: Optional[TranscodeResult] = None
    outcomes: List[StoreOutcome] = field(default_factory=list)

    @property
    def uploaded_keys(self) -> List[str]:
        return [o.key for o in self.outcomes if o.ok and o.key]


@dataclass
class RetractReport:
    path: Path
    outcomes: List[StoreOutcome] = field(default_factory=list)

    @property
    def deleted_keys(self) -> List[str]:
        return [o.key for o in self.outcomes if o.ok and o.key]


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


class AssetPublisher:
    """Publish and retract image assets against an optional object store."""

    def __init__(
        self,
        store: Optional[ObjectStoreProtocol],
        transcoder: Optional[ImageTranscoder] = None,
        *,
        root_segment: str = DEFAULT_ROOT_SEGMENT,
        retract_derivatives: bool = False,
    ):
        self.store = store
        self.transcoder = transcoder or ImageTranscoder()
        self.root_segment = root_segment
        self.retract_derivatives = retract_derivatives

    # --- Public operations ----------------------------------------------------

    def publish(self, local_path: Union[str, os.PathLike]) -> PublishReport:
        """Transcode `local_path` and upload original + derivative.

        Behavior:
            - Non-image files return an empty report without logging.
            - Transcode failure: warning, no upload.
            - Each upload is attempted even if the other one failed.
        """
        path = Path(local_path)
        report = PublishReport(path=path)
        if not is_supported_image(path):
            return report

        result = self.transcoder.transcode(path)
        report.transcode = result
        if not result.ok or result.output_path is None:
            if result.status == FAILED:
                LOG.warning("transcode failed path=%s detail=%s", path, result.detail)
            return report

        if self.store is None:
            LOG.debug("cdn not configured; kept local derivative %s", result.output_path)
            return report

        for source in (path, result.output_path):
            report.outcomes.append(self._upload(source))
        return report

    def retract(self, local_path: Union[str, os.PathLike]) -> RetractReport:
        """Delete the remote object mirrored from `local_path`.

        The delete is issued whether or not the path was ever published.
        """
        path = Path(local_path)
        report = RetractReport(path=path)
        if self.store is None:
            return report

        report.outcomes.append(self._delete(path))
        if self.retract_derivatives and is_supported_image(path):
            report.outcomes.append(self._delete(self.transcoder.output_path_for(path)))
        return report

    def reconcile_tree(self, root_path: Union[str, os.PathLike]) -> int:
        """Publish every regular, non-hidden file below `root_path`, one at a time.

        Returns the number of files visited.
        """
        root = Path(root_path)
        if not root.is_dir():
            LOG.warning("reconcile skipped; not a directory: %s", root)
            return 0
        visited = 0
        for entry in self._walk(root):
            self.publish(entry)
            visited += 1
        LOG.info("reconciled %d file(s) under %s", visited, root)
        return visited

    # --- Helpers ----------------------------------------------------------------

    def _walk(self, directory: Path):
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            LOG.warning("cannot list %s: %s", directory, exc)
            return
        for entry in entries:
            if _is_hidden(entry.name):
                continue
            if entry.is_dir():
                yield from self._walk(entry)
            elif entry.is_file():
                yield entry

    def _key_for(self, path: Path, action: str) -> tuple[Optional[str], Optional[StoreOutcome]]:
        try:
            return make_asset_key(path, root_segment=self.root_segment), None
        except AssetKeyError as exc:
            LOG.warning("%s skipped; %s", action, exc)
            return None, StoreOutcome(action=action, key=None, ok=False, detail=str(exc))

    def _upload(self, path: Path) -> StoreOutcome:
        key, failed = self._key_for(path, UPLOAD)
        if failed is not None:
            return failed
        try:
            body = path.read_bytes()
        except OSError as exc:
            LOG.warning("upload skipped; cannot read %s: %s", path, exc)
            return StoreOutcome(action=UPLOAD, key=key, ok=False, detail=str(exc))
        try:
            stored = self.store.upload(body, key)  # type: ignore[union-attr]
        except UploadError as exc:
            LOG.error("upload failed key=%s detail=%s", key, exc.detail)
            return StoreOutcome(action=UPLOAD, key=key, ok=False, detail=exc.detail)
        LOG.info("uploaded %s (%d bytes)", stored, len(body))
        return StoreOutcome(action=UPLOAD, key=stored, ok=True)

    def _delete(self, path: Path) -> StoreOutcome:
        key, failed = self._key_for(path, DELETE)
        if failed is not None:
            return failed
        try:
            self.store.delete(key)  # type: ignore[union-attr]
        except DeleteError as exc:
            LOG.error("delete failed key=%s detail=%s", key, exc.detail)
            return StoreOutcome(action=DELETE, key=key, ok=False, detail=exc.detail)
        LOG.info("deleted %s", key)
        return StoreOutcome(action=DELETE, key=key, ok=True)


__all__ = [
    "UPLOAD",
    "DELETE",
    "StoreOutcome",
    "PublishReport",
    "RetractReport",
    "AssetPublisher",
]
