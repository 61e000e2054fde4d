"""Shared fixtures: in-memory test images."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pytest
from PIL import ExifTags, Image

if TYPE_CHECKING:
    from collections.abc import Callable


def _noise_image(size: tuple[int, int], mode: str) -> Image.Image:
    image = Image.effect_noise(size, 64).convert("RGB")
    if mode == "RGB":
        return image
    return image.convert(mode)


def encode(image: Image.Image, fmt: str, **save_kwargs: object) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


@pytest.fixture()
def make_image() -> Callable[..., Image.Image]:
    """Factory for noisy in-memory images (so codecs have real content)."""

    def _make(size: tuple[int, int] = (64, 32), mode: str = "RGB") -> Image.Image:
        return _noise_image(size, mode)

    return _make


@pytest.fixture()
def make_image_bytes() -> Callable[..., bytes]:
    """Factory for encoded test images, optionally tagged with an EXIF orientation."""

    def _make(
        size: tuple[int, int] = (64, 32),
        fmt: str = "PNG",
        mode: str = "RGB",
        orientation: int | None = None,
    ) -> bytes:
        image = _noise_image(size, mode)
        if orientation is None:
            return encode(image, fmt)
        exif = Image.Exif()
        exif[ExifTags.Base.Orientation] = orientation
        return encode(image, fmt, exif=exif)

    return _make
