"""
Raster → WebP transcoding for published images.

Pipeline (per file):
- Skip anything that is not a supported raster (.jpg, .jpeg, .png, .gif).
- Write a sibling `<name>.webp` at a moderate quality (80).
- Animated GIFs keep all frames.

Design:
- Pure-Pillow implementation; no external cwebp binary.
- Failures are returned as values (TranscodeResult), never raised: the
  publisher decides what is logged and whether the publish continues.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

SUPPORTED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})
DERIVATIVE_SUFFIX = ".webp"
DEFAULT_QUALITY = 80

CONVERTED = "converted"
UNSUPPORTED = "unsupported"
FAILED = "failed"


def is_supported_image(path: Union[str, os.PathLike]) -> bool:
    """Return True when the extension is a convertible raster type (case-insensitive)."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


@dataclass(frozen=True)
class TranscodeResult:
    source: Path
    status: str
    output_path: Optional[Path] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == CONVERTED


def _single_frame_mode(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "RGBA"):
        return img
    has_alpha = img.mode in ("LA", "PA") or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")


class ImageTranscoder:
    """Convert supported rasters into a compressed WebP derivative."""

    def __init__(self, quality: int = DEFAULT_QUALITY, derivative_suffix: str = DERIVATIVE_SUFFIX):
        self.quality = quality
        self.derivative_suffix = derivative_suffix

    def output_path_for(self, path: Union[str, os.PathLike]) -> Path:
        return Path(path).with_suffix(self.derivative_suffix)

    def transcode(self, path: Union[str, os.PathLike]) -> TranscodeResult:
        source = Path(path)
        if not is_supported_image(source):
            return TranscodeResult(source=source, status=UNSUPPORTED)

        output = self.output_path_for(source)
        try:
            with Image.open(source) as img:
                if getattr(img, "is_animated", False):
                    img.save(output, format="WEBP", quality=self.quality, save_all=True)
                else:
                    _single_frame_mode(img).save(output, format="WEBP", quality=self.quality)
        except (OSError, ValueError, UnidentifiedImageError) as exc:
            # Do not leave a truncated derivative behind for the next publish.
            try:
                output.unlink(missing_ok=True)
            except OSError:
                pass
            return TranscodeResult(
                source=source,
                status=FAILED,
                detail=f"{exc.__class__.__name__}: {exc}",
            )
        return TranscodeResult(source=source, status=CONVERTED, output_path=output)

    def convert(self, path: Union[str, os.PathLike]) -> Optional[Path]:
        """Return the derivative path on success, None when skipped or failed."""
        return self.transcode(path).output_path


__all__ = [
    "SUPPORTED_EXTENSIONS",
    "DERIVATIVE_SUFFIX",
    "DEFAULT_QUALITY",
    "CONVERTED",
    "UNSUPPORTED",
    "FAILED",
    "TranscodeResult",
    "ImageTranscoder",
    "is_supported_image",
]
