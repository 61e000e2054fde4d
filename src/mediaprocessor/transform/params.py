"""Transform parameter types: output format and request parameters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from mediaprocessor.constants import DEFAULT_QUALITY
from mediaprocessor.errors import UnsupportedFormatError


class OutputFormat(StrEnum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"

    @classmethod
    def parse(cls, token: str) -> OutputFormat:
        """Parse a short format token (``jpg``, ``jpeg``, ``png``, ``webp``, ``avif``).

        Raises:
            UnsupportedFormatError: For any other token.
        """
        normalized = token.strip().lower()
        if normalized == "jpg":
            return cls.JPEG
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedFormatError(token) from None

    @classmethod
    def from_source(cls, pillow_format: str | None) -> OutputFormat | None:
        """Map a Pillow source format name to an output format, if there is one."""
        if pillow_format is None:
            return None
        try:
            return cls(pillow_format.lower())
        except ValueError:
            return None

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self]

    @property
    def lossy(self) -> bool:
        """Whether the codec honours a quality setting."""
        return self is not OutputFormat.PNG


_CONTENT_TYPES: dict[OutputFormat, str] = {
    OutputFormat.JPEG: "image/jpeg",
    OutputFormat.PNG: "image/png",
    OutputFormat.WEBP: "image/webp",
    OutputFormat.AVIF: "image/avif",
}


@dataclass(frozen=True)
class TransformParams:
    """Parameters for a single transformation request.

    ``format`` is None when the caller did not ask for one; the pipeline then
    chooses the output format (see ``select_output_format``).
    """

    width: int | None = None
    height: int | None = None
    format: OutputFormat | None = None
    quality: int = DEFAULT_QUALITY

    @classmethod
    def create(
        cls,
        width: int | None = None,
        height: int | None = None,
        format: OutputFormat | None = None,  # noqa: A002
        quality: int | None = None,
    ) -> TransformParams:
        """Build parameters, applying the default quality when none is given."""
        return cls(
            width=width,
            height=height,
            format=format,
            quality=DEFAULT_QUALITY if quality is None else quality,
        )
