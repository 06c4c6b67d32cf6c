"""HOTP (RFC 4226) and TOTP (RFC 6238) code generation.

Uses pyotp for the HMAC and dynamic truncation; this module only fixes the
counter arithmetic so that codes are a pure function of their inputs.
"""

from __future__ import annotations

import math
from datetime import datetime

import pyotp

from twofactor import secret as codec
from twofactor.config import Algorithm


def hotp(
    secret: bytes,
    counter: int,
    digits: int = 6,
    algorithm: Algorithm = Algorithm.SHA1,
) -> str:
    """Compute the zero-padded HOTP code for a counter."""
    if counter < 0:
        raise ValueError("Counter must be non-negative")
    return pyotp.HOTP(codec.encode(secret), digits=digits, digest=algorithm.digest).at(counter)


def timecode(timestamp: float | datetime, seconds: int = 30) -> int:
    """Return the TOTP counter (time step) for a timestamp."""
    if isinstance(timestamp, datetime):
        timestamp = timestamp.timestamp()
    return math.floor(timestamp / seconds)


def totp(
    secret: bytes,
    timestamp: float | datetime,
    seconds: int = 30,
    digits: int = 6,
    algorithm: Algorithm = Algorithm.SHA1,
) -> str:
    """Compute the TOTP code valid at ``timestamp``."""
    return hotp(secret, timecode(timestamp, seconds), digits, algorithm)
