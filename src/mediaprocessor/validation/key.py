"""Object key validation.

Keys arrive percent-encoded from the URL path. They are decoded exactly once
and the decoded form is checked, so encoded traversal attempts such as
``%2e%2e%2f`` are rejected as well.
"""

from __future__ import annotations

import re
from urllib.parse import unquote

from mediaprocessor.errors import KeyRejection, KeyValidationError

MAX_KEY_LENGTH = 1024

_ALLOWED_KEY = re.compile(r"[A-Za-z0-9._/-]+")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _decode(key: str) -> str:
    if _BAD_ESCAPE.search(key):
        raise KeyValidationError(key, KeyRejection.INVALID_ENCODING)
    try:
        return unquote(key, errors="strict")
    except UnicodeDecodeError:
        raise KeyValidationError(key, KeyRejection.INVALID_ENCODING) from None


def validate_key(key: str) -> None:
    """Reject empty, oversized, malformed or path-traversing object keys.

    Raises:
        KeyValidationError: With the reason the key was rejected.
    """
    if not key:
        raise KeyValidationError(key, KeyRejection.EMPTY)
    if len(key) > MAX_KEY_LENGTH:
        raise KeyValidationError(key, KeyRejection.TOO_LONG)

    decoded = _decode(key)

    if ".." in decoded or decoded.startswith("/") or "//" in decoded or "\\" in decoded:
        raise KeyValidationError(key, KeyRejection.PATH_TRAVERSAL)

    if _ALLOWED_KEY.fullmatch(decoded) is None:
        raise KeyValidationError(key, KeyRejection.INVALID_CHARACTERS)
