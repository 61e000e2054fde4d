"""Output size planning ("contain" fit without enlargement).

Scaled sizes are rounded half-up (``floor(x + 0.5)``) and never drop below
one pixel per axis.
"""

from __future__ import annotations

import math

from mediaprocessor.constants import DEFAULT_LIMITS, Limits
from mediaprocessor.errors import ResolutionTooLargeError


def _scale_factor(src_w: int, src_h: int, target_w: int, target_h: int) -> float:
    return min(target_w / src_w, target_h / src_h, 1.0)


def _apply_scale(src_w: int, src_h: int, scale: float) -> tuple[int, int]:
    new_w = math.floor(src_w * scale + 0.5)
    new_h = math.floor(src_h * scale + 0.5)
    return max(new_w, 1), max(new_h, 1)


def calculate_contain_dimensions(
    src_w: int,
    src_h: int,
    target_w: int | None = None,
    target_h: int | None = None,
) -> tuple[int, int]:
    """Fit ``(src_w, src_h)`` inside the requested bounds, keeping aspect ratio.

    With only one bound the other axis follows the same scale. With no bounds
    the source size is returned. The scale is capped at 1.0, so the result
    never exceeds the source on either axis.
    """
    if target_w is not None and target_h is not None:
        scale = _scale_factor(src_w, src_h, target_w, target_h)
    elif target_w is not None:
        scale = min(target_w / src_w, 1.0)
    elif target_h is not None:
        scale = min(target_h / src_h, 1.0)
    else:
        return src_w, src_h
    return _apply_scale(src_w, src_h, scale)


def validate_output_dimensions(width: int, height: int, limits: Limits = DEFAULT_LIMITS) -> None:
    """Reject planned output that exceeds the per-axis or total pixel limits."""
    if width > limits.max_dimension or height > limits.max_dimension:
        raise ResolutionTooLargeError(width, height)
    if width * height > limits.max_pixels:
        raise ResolutionTooLargeError(width, height)
