"""One-time recovery codes."""

from __future__ import annotations

import secrets
import string
from datetime import datetime
from typing import TYPE_CHECKING

from pyotp.utils import strings_equal

from twofactor.models import RecoveryCode

if TYPE_CHECKING:
    from twofactor.record import TwoFactorRecord

ALPHABET = string.ascii_uppercase + string.digits


def generate_codes(count: int = 10, length: int = 10) -> list[str]:
    """Generate ``count`` distinct random alphanumeric codes."""
    if count > len(ALPHABET) ** length:
        raise ValueError(f"Cannot generate {count} distinct codes of length {length}")
    codes: list[str] = []
    seen: set[str] = set()
    while len(codes) < count:
        code = "".join(secrets.choice(ALPHABET) for _ in range(length))
        if code in seen:
            continue
        seen.add(code)
        codes.append(code)
    return codes


def generate(
    record: TwoFactorRecord,
    now: datetime,
    count: int = 10,
    length: int = 10,
) -> list[RecoveryCode]:
    """Replace the record's recovery codes with a fresh batch."""
    record.recovery_codes = [RecoveryCode(code=c) for c in generate_codes(count, length)]
    record.recovery_codes_generated_at = now
    return record.recovery_codes


def consume(record: TwoFactorRecord, code: str, now: datetime) -> bool:
    """Mark a matching unused code as used.

    Returns False when the code is blank, unknown or already used. Every
    stored code is compared so the scan time does not depend on the match.
    """
    if not code or not record.recovery_codes:
        return False

    match: RecoveryCode | None = None
    for entry in record.recovery_codes:
        if strings_equal(entry.code, code) and not entry.is_used and match is None:
            match = entry

    if match is None:
        return False
    match.used_at = now
    return True


def unused(record: TwoFactorRecord) -> list[RecoveryCode]:
    return [entry for entry in record.recovery_codes or [] if not entry.is_used]


def has_unused(record: TwoFactorRecord) -> bool:
    return bool(unused(record))
