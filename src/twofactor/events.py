"""Structured audit events for the two-factor lifecycle.

Every state change (enable, disable, recovery code use, safe device added)
and every failed attempt calls emit(). Events are plain log records on the
``twofactor.events`` logger with the event fields attached as ``extra`` so a
JSON formatter or log shipper can pick them up. Never pass codes, tokens or
secrets in ``context``.
"""

from __future__ import annotations

import logging
from typing import Any

from twofactor.models import OwnerRef

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

ENABLED = "two_factor.enabled"
DISABLED = "two_factor.disabled"
PROVISIONED = "two_factor.provisioned"
RECOVERY_CODES_GENERATED = "recovery_codes.generated"
RECOVERY_CODE_USED = "recovery_code.used"
SAFE_DEVICE_ADDED = "safe_device.added"
SAFE_DEVICE_BYPASS = "safe_device.bypass"
ATTEMPT_FAILED = "attempt.failed"


def emit(
    event_type: str,
    message: str,
    *,
    owner: OwnerRef | None = None,
    severity: str = "info",
    context: dict[str, Any] | None = None,
) -> None:
    """Log a structured event."""
    logger.log(
        _LEVELS.get(severity, logging.INFO),
        "[event] %s: %s",
        event_type,
        message,
        extra={
            "event_type": event_type,
            "owner": str(owner) if owner else None,
            "context": context or {},
        },
    )
