"""Serializing pixel buffers to the supported output codecs.

Quality only reaches codecs whose ``OutputFormat.lossy`` flag is set; PNG is
always lossless. Pillow's WebP encoder supports lossy output, so quality is
honoured there too. A libwebp build without lossy support would need
``lossless=True`` and would ignore quality.
"""

from __future__ import annotations

import io
import logging
from typing import Any

from PIL import Image

from mediaprocessor.errors import ProcessingFailedError
from mediaprocessor.transform.params import OutputFormat

logger = logging.getLogger(__name__)

# libavif speed (0 = slowest/best, 10 = fastest)
AVIF_SPEED = 4

# libwebp effort (0 = fastest, 6 = slowest/best)
WEBP_METHOD = 4

_PILLOW_FORMATS: dict[OutputFormat, str] = {
    OutputFormat.JPEG: "JPEG",
    OutputFormat.PNG: "PNG",
    OutputFormat.WEBP: "WEBP",
    OutputFormat.AVIF: "AVIF",
}

_FIXED_OPTIONS: dict[OutputFormat, dict[str, Any]] = {
    OutputFormat.JPEG: {"progressive": False},
    OutputFormat.PNG: {"optimize": False},
    OutputFormat.WEBP: {"method": WEBP_METHOD},
    OutputFormat.AVIF: {"speed": AVIF_SPEED},
}


def _save_options(output_format: OutputFormat, quality: int) -> dict[str, Any]:
    options = dict(_FIXED_OPTIONS[output_format])
    if output_format.lossy:
        options["quality"] = quality
    return options


def encode_image(image: Image.Image, output_format: OutputFormat, quality: int) -> bytes:
    """Encode ``image`` as ``output_format``.

    JPEG has no alpha channel, so RGBA input is flattened to RGB first.

    Raises:
        ProcessingFailedError: On any codec error, including an encoder that is
            missing from the running Pillow build.
    """
    if output_format is OutputFormat.JPEG and image.mode != "RGB":
        image = image.convert("RGB")

    buf = io.BytesIO()
    try:
        image.save(buf, format=_PILLOW_FORMATS[output_format], **_save_options(output_format, quality))
    except (KeyError, OSError, ValueError) as exc:
        raise ProcessingFailedError("encode", output_format.value) from exc

    data = buf.getvalue()
    logger.debug("Encoded %s (%d bytes)", output_format, len(data))
    return data
