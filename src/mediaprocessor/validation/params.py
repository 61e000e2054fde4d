"""Range checks for transform parameters."""

from __future__ import annotations

from mediaprocessor.constants import MAX_DIMENSION
from mediaprocessor.errors import InvalidParamsError

MIN_QUALITY = 1
MAX_QUALITY = 100


def _check_range(field: str, value: int | None, minimum: int, maximum: int) -> None:
    if value is not None and not minimum <= value <= maximum:
        raise InvalidParamsError(field, value, minimum, maximum)


def validate_params(
    width: int | None = None,
    height: int | None = None,
    quality: int | None = None,
) -> None:
    """Check each supplied parameter against policy limits.

    Absent values are always valid. Checks run quality, width, height and the
    first violation is raised.

    Raises:
        InvalidParamsError: Naming the offending field and value.
    """
    _check_range("quality", quality, MIN_QUALITY, MAX_QUALITY)
    _check_range("width", width, 1, MAX_DIMENSION)
    _check_range("height", height, 1, MAX_DIMENSION)
