"""
envmeta_sdk.tier1_runtime.codec
────────────────────────────────
Value codec at the store boundary.

Values at rest are arbitrary bytes. The store hands them back inside a
JSON record whose ``Value`` field is base64; writes send the bytes as the
request body. Bytes map to ``str`` as UTF-8, with any byte that is not
valid UTF-8 carried as a lone surrogate (``surrogateescape``), so every
stored value decodes and a decoded value writes back byte for byte.
"""
from __future__ import annotations

import base64
import binascii

from envmeta_sdk.tier0_core.errors import DecodeError

TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


def to_bytes(value: str) -> bytes:
    """Bytes of a value as stored, the inverse of ``from_bytes``."""
    return value.encode(TEXT_ENCODING, TEXT_ERRORS)


def from_bytes(raw: bytes) -> str:
    return raw.decode(TEXT_ENCODING, TEXT_ERRORS)


def encode_value(value: str) -> str:
    """Base64-encode a value the way the store reports it on read."""
    return base64.b64encode(to_bytes(value)).decode("ascii")


def decode_value(encoded: str, *, key_path: str | None = None) -> str:
    """
    Decode a base64 ``Value`` field back to a value.

    Raises DecodeError only on malformed base64; any byte sequence is kept.
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise DecodeError(
            "Stored value is not valid base64.",
            detail=f"Cannot base64-decode value of {key_path!r}: {exc}",
            key_path=key_path,
        ) from exc
    return from_bytes(raw)


__all__ = ["encode_value", "decode_value", "to_bytes", "from_bytes"]
