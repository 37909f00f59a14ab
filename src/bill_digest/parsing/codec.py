"""Base64 transport codec used by the Gmail API."""
from __future__ import annotations

import base64


def _to_standard_alphabet(value: str) -> str:
    # Gmail uses the URL-safe alphabet and frequently drops "=" padding.
    value = "".join(value.split()).replace("-", "+").replace("_", "/")
    return value + "=" * (-len(value) % 4)


def decode(value: str | None) -> bytes:
    """Decode a URL-safe (or standard) base64 string to raw bytes."""
    if not value:
        return b""
    return base64.b64decode(_to_standard_alphabet(value))


def decode_text(value: str | None) -> str:
    """Decode a base64 body part as UTF-8 text."""
    return decode(value).decode("utf-8", errors="replace")


def encode(data: bytes) -> str:
    """Encode raw bytes with the URL-safe alphabet Gmail expects."""
    return base64.urlsafe_b64encode(data).decode("ascii")


def to_standard(value: str | None) -> str:
    """Re-encode a transport base64 value with the standard alphabet."""
    return base64.b64encode(decode(value)).decode("ascii")
