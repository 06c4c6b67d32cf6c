"""The two-factor record: one per authenticatable identity."""

from __future__ import annotations

import logging
from datetime import datetime
from urllib.parse import quote, urlencode
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, SecretBytes

from twofactor import otp, recovery, safe_devices, validator
from twofactor import secret as codec
from twofactor.clock import utcnow
from twofactor.config import Algorithm, Settings
from twofactor.config import settings as default_settings
from twofactor.exceptions import TwoFactorError
from twofactor.models import OwnerRef, RecoveryCode, SafeDevice

logger = logging.getLogger(__name__)


class TwoFactorRecord(BaseModel):
    """Shared secret, TOTP parameters, recovery codes and safe devices.

    ``shared_secret`` is a ``SecretBytes`` so it is masked in ``repr`` and
    in ``model_dump_json``; the only way to get it out as text is
    :meth:`make_uri_for_provisioning`, which refuses once the record is
    enabled.
    """

    id: UUID = Field(default_factory=uuid4)
    owner_type: str
    owner_id: str
    shared_secret: SecretBytes
    enabled_at: datetime | None = None
    label: str
    digits: int = Field(default=6, ge=6, le=8)
    seconds: int = Field(default=30, gt=0)
    window: int = Field(default=0, ge=0)
    algorithm: Algorithm = Algorithm.SHA1
    recovery_codes: list[RecoveryCode] | None = None
    recovery_codes_generated_at: datetime | None = None
    safe_devices: list[SafeDevice] = Field(default_factory=list)
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # --- Provisioning ---

    @classmethod
    def provision(
        cls,
        owner: OwnerRef,
        label: str,
        settings: Settings | None = None,
        now: datetime | None = None,
    ) -> TwoFactorRecord:
        """Create an unconfirmed record with a fresh secret."""
        settings = settings or default_settings
        now = now or utcnow()
        record = cls(
            owner_type=owner.owner_type,
            owner_id=owner.owner_id,
            shared_secret=SecretBytes(b""),
            label=label,
            created_at=now,
            updated_at=now,
        )
        record.reprovision(settings)
        return record

    def reprovision(self, settings: Settings | None = None) -> None:
        """Regenerate the secret and TOTP parameters of an unconfirmed record."""
        if self.is_enabled:
            raise TwoFactorError("Two-factor authentication is already enabled")
        settings = settings or default_settings
        self.shared_secret = SecretBytes(codec.generate_secret(settings.secret_length))
        self.digits = settings.digits
        self.seconds = settings.seconds
        self.window = settings.window
        self.algorithm = settings.algorithm
        self.recovery_codes = None
        self.recovery_codes_generated_at = None
        self.safe_devices = []

    @property
    def owner(self) -> OwnerRef:
        return OwnerRef(self.owner_type, self.owner_id)

    @property
    def secret(self) -> bytes:
        return self.shared_secret.get_secret_value()

    @property
    def is_enabled(self) -> bool:
        return self.enabled_at is not None

    def make_uri_for_provisioning(self, issuer: str = "") -> str:
        """Build the ``otpauth://`` URI an authenticator app scans."""
        if self.is_enabled:
            raise TwoFactorError("The shared secret is no longer exportable once enabled")

        label = f"{quote(issuer)}:{quote(self.label)}" if issuer else quote(self.label)
        params: dict[str, str | int] = {"secret": codec.encode(self.secret)}
        if issuer:
            params["issuer"] = issuer
        params.update(
            algorithm=self.algorithm.value.upper(),
            digits=self.digits,
            period=self.seconds,
        )
        return f"otpauth://totp/{label}?{urlencode(params, quote_via=quote)}"

    # --- Codes ---

    def make_code(self, at: datetime | float | None = None, offset: int = 0) -> str:
        """The TOTP code for ``at`` (default now), shifted by ``offset`` steps."""
        at = utcnow() if at is None else at
        counter = otp.timecode(at, self.seconds) + offset
        return otp.hotp(self.secret, counter, self.digits, self.algorithm)

    def validate_code(self, code: str | None, now: datetime) -> bool:
        return validator.validate(self, code, now)

    def confirm(self, code: str | None, now: datetime, settings: Settings | None = None) -> bool:
        """Enable the record if ``code`` proves possession of the secret."""
        if self.is_enabled:
            return True
        if not validator.verify_totp(self, code, now):
            return False

        settings = settings or default_settings
        self.enabled_at = now
        if settings.recovery_codes.enabled:
            self.generate_recovery_codes(now, settings)
        logger.info("Two-factor authentication enabled for %s", self.owner)
        return True

    def disable(self) -> None:
        """Wipe the secret, recovery codes and safe devices in one step."""
        self.shared_secret = SecretBytes(b"")
        self.enabled_at = None
        self.recovery_codes = None
        self.recovery_codes_generated_at = None
        safe_devices.flush(self)

    # --- Recovery codes ---

    def generate_recovery_codes(
        self,
        now: datetime,
        settings: Settings | None = None,
    ) -> list[RecoveryCode]:
        settings = settings or default_settings
        return recovery.generate(
            self,
            now,
            count=settings.recovery_codes.count,
            length=settings.recovery_codes.length,
        )

    def use_recovery_code(self, code: str, now: datetime) -> bool:
        return recovery.consume(self, code, now)

    def has_unused_recovery_codes(self) -> bool:
        return recovery.has_unused(self)

    # --- Safe devices ---

    def add_safe_device(self, ip: str, now: datetime, settings: Settings | None = None) -> str:
        settings = settings or default_settings
        return safe_devices.issue(
            self,
            ip,
            now,
            max_devices=settings.safe_devices.max,
            expiration_days=settings.safe_devices.expiration_days,
        )

    def is_safe_device(self, token: str, ip: str, now: datetime) -> bool:
        return safe_devices.is_trusted(self, token, ip, now)
