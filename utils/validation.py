"""Input validation helpers."""
from __future__ import annotations

from typing import Union

DocumentInput = Union[str, bytes, None]


def validate_document(value: DocumentInput, name: str = "document") -> str:
    """
    Coerce a comparison input to text.

    ``None`` is treated as an empty document and bytes are decoded as UTF-8
    (undecodable bytes replaced). Anything else is a caller error.
    """
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if not isinstance(value, str):
        raise TypeError(f"{name} must be str, bytes or None, got {type(value).__name__}")
    return value
