"""EXIF orientation lookup and pixel normalization.

Orientation is an enhancement: absent or unreadable EXIF yields ``None`` and
the image is processed as stored.
"""

from __future__ import annotations

import io
import logging
import struct
from enum import IntEnum

from PIL import ExifTags, Image

logger = logging.getLogger(__name__)


class Orientation(IntEnum):
    NORMAL = 1
    FLIP_HORIZONTAL = 2
    ROTATE_180 = 3
    FLIP_VERTICAL = 4
    TRANSPOSE = 5
    ROTATE_90 = 6
    TRANSVERSE = 7
    ROTATE_270 = 8

    @classmethod
    def from_tag(cls, value: object) -> Orientation | None:
        """Return the orientation for a raw tag value, or None if unrecognized."""
        if not isinstance(value, int):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# Pillow rotates counter-clockwise: ROTATE_270 there is 90 degrees clockwise.
# TRANSPOSE equals a clockwise quarter turn followed by a left-right mirror,
# TRANSVERSE a counter-clockwise one followed by the same mirror.
_TRANSPOSES: dict[Orientation, Image.Transpose | None] = {
    Orientation.NORMAL: None,
    Orientation.FLIP_HORIZONTAL: Image.Transpose.FLIP_LEFT_RIGHT,
    Orientation.ROTATE_180: Image.Transpose.ROTATE_180,
    Orientation.FLIP_VERTICAL: Image.Transpose.FLIP_TOP_BOTTOM,
    Orientation.TRANSPOSE: Image.Transpose.TRANSPOSE,
    Orientation.ROTATE_90: Image.Transpose.ROTATE_270,
    Orientation.TRANSVERSE: Image.Transpose.TRANSVERSE,
    Orientation.ROTATE_270: Image.Transpose.ROTATE_90,
}

# Failures Pillow raises for truncated or malformed EXIF blocks
_EXIF_PARSE_ERRORS = (OSError, SyntaxError, ValueError, struct.error)


def read_orientation(data: bytes) -> Orientation | None:
    """Read the EXIF orientation tag from raw image bytes.

    Returns None when the container has no EXIF block, the block cannot be
    parsed, or the tag value is not one of the eight defined codes.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            exif = _header_exif(image)
            value = exif.get(ExifTags.Base.Orientation) if exif is not None else None
    except _EXIF_PARSE_ERRORS as exc:
        logger.debug("Ignoring unreadable EXIF data: %s", exc)
        return None
    return Orientation.from_tag(value)


def _header_exif(image: Image.Image) -> Image.Exif | None:
    # Image.getexif() may decode the whole bitstream looking for a trailing
    # PNG eXIf chunk; only metadata already parsed from the header is used.
    raw = image.info.get("exif")
    if raw is not None:
        exif = Image.Exif()
        exif.load(raw)
        return exif
    if image.format == "TIFF":
        # TIFF keeps orientation in its main IFD, read along with the header
        return image.getexif()
    return None


def apply_orientation(image: Image.Image, orientation: Orientation) -> Image.Image:
    """Rotate and flip pixels so the image displays upright without EXIF.

    90 and 270 degree variants swap width and height.
    """
    method = _TRANSPOSES[orientation]
    if method is None:
        return image
    return image.transpose(method)
