"""Transformation pipeline.

Every request runs decode -> orient -> plan -> (resize) -> encode, even with
no parameters: re-encoding from a clean pixel buffer is what strips EXIF and
XMP metadata from the output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mediaprocessor.constants import DEFAULT_LIMITS, Limits
from mediaprocessor.transform.decode import decode_image
from mediaprocessor.transform.dimensions import calculate_contain_dimensions, validate_output_dimensions
from mediaprocessor.transform.encode import encode_image
from mediaprocessor.transform.orientation import apply_orientation, read_orientation
from mediaprocessor.transform.params import OutputFormat, TransformParams
from mediaprocessor.transform.resize import resize_image
from mediaprocessor.validation.params import validate_params

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformResult:
    """Encoded output of a transformation."""

    content: bytes
    content_type: str
    width: int
    height: int


def select_output_format(source_format: str | None, requested: OutputFormat | None) -> OutputFormat:
    """Choose the output codec.

    The requested format wins. Without one, the source format is kept when it
    is an output format, and anything else (GIF, BMP, TIFF) becomes JPEG.
    """
    if requested is not None:
        return requested
    return OutputFormat.from_source(source_format) or OutputFormat.JPEG


def transform(data: bytes, params: TransformParams, limits: Limits = DEFAULT_LIMITS) -> TransformResult:
    """Decode, normalize, resize and re-encode ``data`` according to ``params``.

    This is CPU-bound; async callers should run it through ``ComputePool``.

    Raises:
        InvalidParamsError: If a parameter is out of range.
        ResolutionTooLargeError: If the source or planned output exceeds ``limits``.
        ProcessingFailedError: If decoding, resizing or encoding fails.
    """
    validate_params(params.width, params.height, params.quality)

    decoded = decode_image(data, max_pixels=limits.max_pixels)

    orientation = read_orientation(data)
    image = decoded.image
    if orientation is not None:
        image = apply_orientation(image, orientation)
        logger.debug(
            "Applied EXIF orientation %s to %dx%d source",
            orientation.name,
            decoded.width,
            decoded.height,
        )

    src_w, src_h = image.size
    dst_w, dst_h = calculate_contain_dimensions(src_w, src_h, params.width, params.height)
    validate_output_dimensions(dst_w, dst_h, limits)

    if (dst_w, dst_h) != (src_w, src_h):
        image = resize_image(image, dst_w, dst_h, max_pixels=limits.max_pixels)

    output_format = select_output_format(decoded.source_format, params.format)
    content = encode_image(image, output_format, params.quality)

    return TransformResult(
        content=content,
        content_type=output_format.content_type,
        width=dst_w,
        height=dst_h,
    )
