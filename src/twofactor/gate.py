"""Authentication gate consulted by the login flow after the password check.

``evaluate`` is a pure decision over a record and a request; the predicate
factories at the bottom bind it to a :class:`~twofactor.service.TwoFactorService`
so a login flow can call ``predicate(owner, request)`` and get a boolean
(``has_code``) or a raised :class:`InvalidCode` (``has_code_or_fails``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from twofactor import validator
from twofactor.config import Settings
from twofactor.config import settings as default_settings
from twofactor.exceptions import InvalidCode
from twofactor.models import CodeKind, Cookie, OwnerRef, RequestContext
from twofactor.record import TwoFactorRecord

if TYPE_CHECKING:
    from twofactor.service import TwoFactorService

logger = logging.getLogger(__name__)

Predicate = Callable[[OwnerRef, RequestContext], bool]


class Outcome(StrEnum):
    NOT_REQUIRED = "not_required"
    SAFE_DEVICE = "safe_device"
    TOTP = "totp"
    RECOVERY_CODE = "recovery_code"
    FAILED = "failed"


@dataclass(frozen=True)
class GateConfig:
    input: str = "2fa_code"
    strict: bool = False
    message: str | None = None


@dataclass
class GateResult:
    passed: bool
    outcome: Outcome
    changed: bool = False
    cookie: Cookie | None = None

    def raise_for_failure(self, config: GateConfig) -> None:
        """Raise the field-scoped error for a failed attempt."""
        if not self.passed:
            raise InvalidCode(field=config.input, message=config.message)


def _is_filled(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def evaluate(
    record: TwoFactorRecord | None,
    request: RequestContext,
    now: datetime,
    config: GateConfig | None = None,
    settings: Settings | None = None,
) -> GateResult:
    """Decide one authentication attempt.

    May mutate ``record`` (a recovery code used, a safe device added); the
    result's ``changed`` flag tells the caller to persist it.
    """
    config = config or GateConfig()
    settings = settings or default_settings

    if not settings.enabled or record is None or not record.is_enabled:
        return GateResult(passed=True, outcome=Outcome.NOT_REQUIRED)

    devices = settings.safe_devices
    if devices.enabled:
        token = request.cookies.get(devices.cookie)
        if token and record.is_safe_device(token, request.ip, now):
            return GateResult(passed=True, outcome=Outcome.SAFE_DEVICE)

    code = request.input.get(config.input)
    if not isinstance(code, str) or not code.strip():
        return GateResult(passed=False, outcome=Outcome.FAILED)

    kind = validator.check(record, code.strip(), now)
    if kind is None:
        return GateResult(passed=False, outcome=Outcome.FAILED)

    result = GateResult(
        passed=True,
        outcome=Outcome.TOTP if kind is CodeKind.TOTP else Outcome.RECOVERY_CODE,
        changed=kind is CodeKind.RECOVERY_CODE,
    )
    if devices.enabled and _is_filled(request.input.get(settings.safe_device_input)):
        token = record.add_safe_device(request.ip, now, settings)
        result.cookie = Cookie(name=devices.cookie, value=token, max_age=devices.expiration_minutes)
        result.changed = True
    return result


def has_code(service: TwoFactorService, input: str = "2fa_code") -> Predicate:
    """Tolerant predicate: returns False on any failure, never raises."""
    config = GateConfig(input=input)

    def predicate(owner: OwnerRef, request: RequestContext) -> bool:
        try:
            return service.attempt(owner, request, config).passed
        except Exception:
            logger.warning("Two-factor check failed for %s", owner, exc_info=True)
            return False

    return predicate


def has_code_or_fails(
    service: TwoFactorService,
    input: str = "2fa_code",
    message: str | None = None,
) -> Predicate:
    """Strict predicate: raises :class:`InvalidCode` instead of returning False."""
    config = GateConfig(input=input, strict=True, message=message)

    def predicate(owner: OwnerRef, request: RequestContext) -> bool:
        return service.attempt(owner, request, config).passed

    return predicate
