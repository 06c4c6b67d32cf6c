"""Safe devices: client-held tokens that skip the second factor for a while.

Only the SHA-256 of a token is stored on the record. Trust is bound to the
IP address the device was registered from.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from pyotp.utils import strings_equal

from twofactor.models import SafeDevice

if TYPE_CHECKING:
    from twofactor.record import TwoFactorRecord

TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def issue(
    record: TwoFactorRecord,
    ip: str,
    now: datetime,
    max_devices: int = 3,
    expiration_days: int = 14,
) -> str:
    """Register a new safe device and return its raw token.

    When the list is full the oldest devices (by ``added_at``) are evicted
    first.
    """
    while record.safe_devices and len(record.safe_devices) >= max_devices:
        oldest = min(record.safe_devices, key=lambda d: d.added_at)
        record.safe_devices.remove(oldest)

    token = generate_token()
    record.safe_devices.append(
        SafeDevice(
            code=hash_token(token),
            ip=ip,
            expires_at=now + timedelta(days=expiration_days),
            added_at=now,
        )
    )
    return token


def is_trusted(record: TwoFactorRecord, token: str, ip: str, now: datetime) -> bool:
    """Check a presented token against the record's unexpired devices."""
    if not token:
        return False

    digest = hash_token(token)
    trusted = False
    for device in record.safe_devices:
        if strings_equal(device.code, digest) and device.ip == ip and device.expires_at > now:
            trusted = True
    return trusted


def prune_expired(record: TwoFactorRecord, now: datetime) -> int:
    """Drop expired devices; returns how many were removed."""
    before = len(record.safe_devices)
    record.safe_devices = [d for d in record.safe_devices if d.expires_at > now]
    return before - len(record.safe_devices)


def flush(record: TwoFactorRecord) -> None:
    record.safe_devices = []
