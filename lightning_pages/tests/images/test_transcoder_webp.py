"""
WebP transcoding with Pillow.

Expected:
  - Supported rasters produce a sibling .webp that Pillow can open.
  - Unsupported extensions are skipped without touching the file.
  - Broken input yields a FAILED result (not an exception) and no output.
"""
from __future__ import annotations

from pathlib import Path

from PIL import Image

from lightning_pages.images.transcode import (
    CONVERTED,
    FAILED,
    UNSUPPORTED,
    ImageTranscoder,
    is_supported_image,
)
from utils.image_fixtures import write_animated_gif, write_image


def test_supported_extensions_are_case_insensitive():
    for name in ("a.jpg", "a.JPEG", "a.Png", "a.gif"):
        assert is_supported_image(name)
    for name in ("a.webp", "a.svg", "a.css", "README"):
        assert not is_supported_image(name)


def test_png_converts_to_sibling_webp(tmp_path: Path):
    src = write_image(tmp_path / "public" / "images" / "logo.png")

    result = ImageTranscoder().transcode(src)

    assert result.status == CONVERTED and result.ok
    assert result.output_path == src.with_suffix(".webp")
    with Image.open(result.output_path) as out:
        assert out.format == "WEBP"
        assert out.size == (64, 48)


def test_jpeg_with_dots_in_name_keeps_full_stem(tmp_path: Path):
    src = write_image(tmp_path / "hero.v2.final.jpg")
    assert ImageTranscoder().convert(src) == tmp_path / "hero.v2.final.webp"


def test_animated_gif_keeps_frames(tmp_path: Path):
    src = write_animated_gif(tmp_path / "spinner.gif", frames=3)

    out = ImageTranscoder().convert(src)

    assert out is not None
    with Image.open(out) as img:
        assert getattr(img, "n_frames", 1) == 3


def test_unsupported_extension_is_skipped(tmp_path: Path):
    src = tmp_path / "notes.txt"
    src.write_text("hello")

    result = ImageTranscoder().transcode(src)

    assert result.status == UNSUPPORTED
    assert result.output_path is None
    assert not (tmp_path / "notes.webp").exists()


def test_corrupt_image_reports_failure_without_output(tmp_path: Path):
    src = tmp_path / "broken.png"
    src.write_bytes(b"not really a png")

    result = ImageTranscoder().transcode(src)

    assert result.status == FAILED
    assert result.detail
    assert ImageTranscoder().convert(src) is None
    assert not (tmp_path / "broken.webp").exists()


def test_missing_source_reports_failure(tmp_path: Path):
    result = ImageTranscoder().transcode(tmp_path / "gone.jpg")
    assert result.status == FAILED
