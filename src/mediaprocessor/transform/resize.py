"""High-quality downscaling."""

from __future__ import annotations

import logging

from PIL import Image

from mediaprocessor.constants import MAX_PIXELS
from mediaprocessor.errors import ProcessingFailedError, ResolutionTooLargeError

logger = logging.getLogger(__name__)


def resize_image(image: Image.Image, width: int, height: int, max_pixels: int = MAX_PIXELS) -> Image.Image:
    """Resample ``image`` to exactly ``width`` x ``height`` with a Lanczos filter.

    Raises:
        ResolutionTooLargeError: If the target exceeds ``max_pixels``.
        ProcessingFailedError: If resampling fails.
    """
    if width * height > max_pixels:
        raise ResolutionTooLargeError(width, height)

    try:
        resized = image.resize((width, height), Image.Resampling.LANCZOS)
    except (OSError, ValueError) as exc:
        raise ProcessingFailedError("resize") from exc

    logger.debug("Resized %dx%d -> %dx%d", image.width, image.height, width, height)
    return resized
