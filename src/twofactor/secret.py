"""Base32 codec for shared secrets (RFC 4648, uppercase, unpadded)."""

from __future__ import annotations

import base64
import binascii
import os

from twofactor.exceptions import InvalidSecretFormat

ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")


def generate_secret(length: int = 20) -> bytes:
    """Generate ``length`` random bytes from the OS CSPRNG."""
    if not 16 <= length <= 64:
        raise ValueError("Secret length must be between 16 and 64 bytes")
    return os.urandom(length)


def encode(data: bytes) -> str:
    """Encode bytes as uppercase Base32 without padding."""
    return base64.b32encode(data).decode("ascii").rstrip("=")


def decode(text: str) -> bytes:
    """Decode Base32 text, accepting lowercase, spaces and missing padding."""
    cleaned = "".join(text.split()).upper().rstrip("=")
    bad = set(cleaned) - ALPHABET
    if bad:
        raise InvalidSecretFormat(f"Invalid Base32 characters: {''.join(sorted(bad))!r}")

    padded = cleaned + "=" * (-len(cleaned) % 8)
    try:
        return base64.b32decode(padded)
    except binascii.Error as e:
        raise InvalidSecretFormat(f"Invalid Base32 length: {len(cleaned)}") from e
