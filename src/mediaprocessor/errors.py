"""Error hierarchy for the media processor.

Errors carry structured fields only. Human-readable messages are produced at
the HTTP boundary (see ``mediaprocessor.api.errors``).
"""

from __future__ import annotations

from enum import StrEnum


class MediaError(Exception):
    """Base class for all media processor errors."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(MediaError):
    """Caller supplied a malformed key or parameter."""


class KeyRejection(StrEnum):
    """Why an object key was rejected."""

    EMPTY = "empty"
    TOO_LONG = "too_long"
    INVALID_ENCODING = "invalid_encoding"
    PATH_TRAVERSAL = "path_traversal"
    INVALID_CHARACTERS = "invalid_characters"


class KeyValidationError(ValidationError):
    """The object key is malformed or unsafe."""

    def __init__(self, key: str, reason: KeyRejection) -> None:
        super().__init__(key, reason)
        self.key = key
        self.reason = reason


class UnsupportedFormatError(ValidationError):
    """The requested output format token is not recognized."""

    def __init__(self, token: str) -> None:
        super().__init__(token)
        self.token = token


# ---------------------------------------------------------------------------
# Transformation
# ---------------------------------------------------------------------------


class TransformError(MediaError):
    """A pipeline stage rejected or failed to process the image."""


class InvalidParamsError(ValidationError, TransformError):
    """A transform parameter is outside its allowed range."""

    def __init__(self, field: str, value: int, minimum: int, maximum: int) -> None:
        super().__init__(field, value)
        self.field = field
        self.value = value
        self.minimum = minimum
        self.maximum = maximum


class ResolutionTooLargeError(TransformError):
    """Source or planned output exceeds the pixel or per-axis limits."""

    def __init__(self, width: int, height: int) -> None:
        super().__init__(width, height)
        self.width = width
        self.height = height


class ProcessingFailedError(TransformError):
    """Codec-level failure while decoding, resizing or encoding."""

    def __init__(self, stage: str, format: str | None = None) -> None:  # noqa: A002
        super().__init__(stage, format)
        self.stage = stage
        self.format = format


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class StorageError(MediaError):
    """The storage proxy could not deliver the object."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key


class ObjectNotFoundError(StorageError):
    """The storage proxy has no object under the key."""


class StorageForbiddenError(StorageError):
    """The storage proxy refused the service credentials."""


class StorageTransportError(StorageError):
    """Network failure or unexpected status from the storage proxy."""

    def __init__(self, key: str, status: int | None = None) -> None:
        super().__init__(key)
        self.status = status


class ObjectTooLargeError(StorageError):
    """The object body exceeds the configured input size."""

    def __init__(self, key: str, size: int, limit: int) -> None:
        super().__init__(key)
        self.size = size
        self.limit = limit


class ConfigurationError(MediaError):
    """A required setting is missing."""

    def __init__(self, setting: str) -> None:
        super().__init__(setting)
        self.setting = setting
