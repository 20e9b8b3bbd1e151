"""
Duck-typed fakes for the object store and the transcoder.

The publisher only needs `upload(body, key)` / `delete(key)` and
`transcode(path)` / `output_path_for(path)`, so tests record calls instead of
touching a bucket or Pillow.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from lightning_pages.images.transcode import CONVERTED, FAILED, UNSUPPORTED, TranscodeResult, is_supported_image
from lightning_pages.storage.ports import DeleteError, UploadError


class FakeObjectStore:
    def __init__(self, *, fail_uploads: Iterable[str] = (), fail_deletes: Iterable[str] = ()):
        self.uploads: List[Tuple[str, bytes]] = []
        self.deletes: List[str] = []
        self._fail_uploads = set(fail_uploads)
        self._fail_deletes = set(fail_deletes)
        self._lock = threading.Lock()

    @property
    def uploaded_keys(self) -> List[str]:
        return [key for key, _ in self.uploads]

    def upload(self, body: bytes, key: str) -> str:
        if key in self._fail_uploads:
            raise UploadError(key, "simulated upload failure")
        with self._lock:
            self.uploads.append((key, body))
        return key

    def delete(self, key: str) -> None:
        if key in self._fail_deletes:
            raise DeleteError(key, "simulated delete failure")
        with self._lock:
            self.deletes.append(key)


class FakeTranscoder:
    """Writes a placeholder `.webp` next to the source, or reports a failure."""

    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.calls: List[Path] = []

    def output_path_for(self, path) -> Path:
        return Path(path).with_suffix(".webp")

    def transcode(self, path) -> TranscodeResult:
        source = Path(path)
        self.calls.append(source)
        if not is_supported_image(source):
            return TranscodeResult(source=source, status=UNSUPPORTED)
        if self.fail:
            return TranscodeResult(source=source, status=FAILED, detail="simulated")
        output = self.output_path_for(source)
        output.write_bytes(b"RIFF-fake-webp")
        return TranscodeResult(source=source, status=CONVERTED, output_path=output)

    def convert(self, path) -> Optional[Path]:
        return self.transcode(path).output_path


__all__ = ["FakeObjectStore", "FakeTranscoder"]
