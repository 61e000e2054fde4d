"""Decoding raw bytes into an owned pixel buffer."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image

from mediaprocessor.constants import MAX_PIXELS
from mediaprocessor.errors import ProcessingFailedError, ResolutionTooLargeError

logger = logging.getLogger(__name__)

# Pixel counts are checked explicitly against the configured limit before
# any pixel data is loaded, so Pillow's own warning threshold is turned off.
Image.MAX_IMAGE_PIXELS = None

SUPPORTED_SOURCE_FORMATS: tuple[str, ...] = ("JPEG", "PNG", "WEBP", "AVIF", "GIF", "BMP", "TIFF")

_DECODE_ERRORS = (OSError, SyntaxError, ValueError)


def _available_formats() -> list[str]:
    # AVIF depends on how Pillow was built
    Image.init()
    return [fmt for fmt in SUPPORTED_SOURCE_FORMATS if fmt in Image.OPEN]


@dataclass
class DecodedImage:
    """A fully loaded image and the container format it was read from."""

    image: Image.Image
    source_format: str | None

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def pixel_count(self) -> int:
        return self.image.width * self.image.height


def _normalize_mode(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA"):
        return image
    return image.convert("RGBA" if image.has_transparency_data else "RGB")


def decode_image(data: bytes, max_pixels: int = MAX_PIXELS) -> DecodedImage:
    """Sniff the container format from content and decode it.

    The header is read first and the natural pixel count is checked against
    ``max_pixels`` before the bitstream is decoded. The result is RGB or RGBA
    with all container metadata dropped.

    Raises:
        ResolutionTooLargeError: If the image has more than ``max_pixels`` pixels.
        ProcessingFailedError: If the format is unrecognized or the data is corrupt.
    """
    try:
        image = Image.open(io.BytesIO(data), formats=_available_formats())
    except _DECODE_ERRORS as exc:
        raise ProcessingFailedError("decode") from exc

    width, height = image.size
    if width * height > max_pixels:
        image.close()
        raise ResolutionTooLargeError(width, height)

    source_format = image.format
    try:
        image.load()
        image = _normalize_mode(image)
    except _DECODE_ERRORS as exc:
        raise ProcessingFailedError("decode", source_format) from exc

    image.info.clear()
    decoded = DecodedImage(image=image, source_format=source_format)
    logger.debug(
        "Decoded %s image %dx%d, %d pixels (mode=%s)",
        source_format,
        decoded.width,
        decoded.height,
        decoded.pixel_count,
        image.mode,
    )
    return decoded
