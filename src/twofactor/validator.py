"""Code validation against a record's TOTP window and recovery codes.

TOTP is tried first, recovery codes second. A recovery code is therefore
only burned when the submission is not a currently valid TOTP code.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pyotp.utils import strings_equal

from twofactor import otp, recovery
from twofactor.models import CodeKind

if TYPE_CHECKING:
    from twofactor.record import TwoFactorRecord


def _is_blank(code: str | None) -> bool:
    return code is None or not code.strip()


def verify_totp(record: TwoFactorRecord, code: str | None, now: datetime) -> bool:
    """Check ``code`` against every time step in ``[current-window, current+window]``."""
    if _is_blank(code):
        return False

    secret = record.secret
    current = otp.timecode(now, record.seconds)
    for counter in range(current - record.window, current + record.window + 1):
        if counter < 0:
            continue
        expected = otp.hotp(secret, counter, record.digits, record.algorithm)
        if strings_equal(expected, code):
            return True
    return False


def check(record: TwoFactorRecord, code: str | None, now: datetime) -> CodeKind | None:
    """Return which kind of code matched, consuming a recovery code if needed."""
    if _is_blank(code):
        return None
    if verify_totp(record, code, now):
        return CodeKind.TOTP
    if recovery.consume(record, code, now):
        return CodeKind.RECOVERY_CODE
    return None


def validate(record: TwoFactorRecord, code: str | None, now: datetime) -> bool:
    """Validate a submitted code; records that are not enabled always pass."""
    if not record.is_enabled:
        return True
    return check(record, code, now) is not None
