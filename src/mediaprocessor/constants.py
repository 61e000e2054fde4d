"""Process-wide limits for the transformation pipeline."""

from __future__ import annotations

from dataclasses import dataclass

# Per-axis cap for output images (pixels)
MAX_DIMENSION: int = 4096

# Total pixel-count cap; only stops decompression bombs, not ordinary photos
MAX_PIXELS: int = 1_000_000_000

DEFAULT_QUALITY: int = 80

# Largest object body the storage client will accept (bytes)
DEFAULT_MAX_INPUT_SIZE: int = 50 * 1024 * 1024


@dataclass(frozen=True)
class Limits:
    """Resource envelope enforced by the pipeline."""

    max_dimension: int = MAX_DIMENSION
    max_pixels: int = MAX_PIXELS


DEFAULT_LIMITS = Limits()
