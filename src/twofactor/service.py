"""Two-factor lifecycle over a record store and a clock.

This is what a login flow or an account-settings endpoint talks to. Each
method does a single load -> mutate -> save round trip.
"""

from __future__ import annotations

import logging

from twofactor import events
from twofactor.clock import Clock, utcnow
from twofactor.config import Settings
from twofactor.config import settings as default_settings
from twofactor.exceptions import StorageConflict, TwoFactorError
from twofactor.gate import GateConfig, GateResult, Outcome, Predicate, evaluate, has_code, has_code_or_fails
from twofactor.models import OwnerRef, RequestContext
from twofactor.record import TwoFactorRecord
from twofactor.store import RecordStore

logger = logging.getLogger(__name__)

# One retry of the whole read-modify-write when a concurrent attempt wins.
MAX_ATTEMPT_TRIES = 2


class TwoFactorService:

    def __init__(
        self,
        store: RecordStore,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.settings = settings or default_settings
        self.clock = clock

    def get(self, owner: OwnerRef) -> TwoFactorRecord | None:
        return self.store.load(owner)

    def create(self, owner: OwnerRef, label: str) -> TwoFactorRecord:
        """Provision a record, or re-provision an unconfirmed one."""
        record = self.store.load(owner)
        if record is None:
            record = TwoFactorRecord.provision(owner, label, self.settings, now=self.clock())
        elif record.is_enabled:
            raise TwoFactorError(f"Two-factor authentication already enabled for {owner}")
        else:
            record.reprovision(self.settings)
            record.label = label

        self.store.save(record)
        events.emit(events.PROVISIONED, "Two-factor secret provisioned", owner=owner)
        return record

    def confirm(self, owner: OwnerRef, code: str | None) -> bool:
        """Enable two-factor for ``owner`` if ``code`` is a valid TOTP code."""
        record = self.store.load(owner)
        if record is None:
            return False
        if record.is_enabled:
            return True
        if not record.confirm(code, self.clock(), self.settings):
            events.emit(events.ATTEMPT_FAILED, "Confirmation code rejected", owner=owner, severity="warning")
            return False

        self.store.save(record)
        events.emit(
            events.ENABLED,
            "Two-factor authentication enabled",
            owner=owner,
            context={"recovery_codes": len(record.recovery_codes or [])},
        )
        return True

    def disable(self, owner: OwnerRef) -> None:
        record = self.store.load(owner)
        if record is None:
            return
        record.disable()
        self.store.save(record)
        events.emit(events.DISABLED, "Two-factor authentication disabled", owner=owner)

    def regenerate_recovery_codes(self, owner: OwnerRef) -> list[str]:
        """Replace the owner's recovery codes; returns the new plaintext codes."""
        record = self.store.load(owner)
        if record is None or not record.is_enabled:
            raise TwoFactorError(f"Two-factor authentication is not enabled for {owner}")
        codes = record.generate_recovery_codes(self.clock(), self.settings)
        self.store.save(record)
        events.emit(
            events.RECOVERY_CODES_GENERATED,
            "Recovery codes regenerated",
            owner=owner,
            context={"count": len(codes)},
        )
        return [c.code for c in codes]

    def attempt(
        self,
        owner: OwnerRef,
        request: RequestContext,
        config: GateConfig | None = None,
    ) -> GateResult:
        """Run the gate for one login attempt and persist what it changed.

        The outbound safe-device cookie is queued on ``request`` only after
        the record was saved. With ``config.strict`` a failed attempt raises
        :class:`InvalidCode` instead of returning a failed result.
        """
        config = config or GateConfig(input=self.settings.input)

        for tries in range(1, MAX_ATTEMPT_TRIES + 1):
            record = self.store.load(owner)
            result = evaluate(record, request, self.clock(), config, self.settings)
            if not result.changed or record is None:
                break
            try:
                self.store.save(record)
                break
            except StorageConflict:
                if tries == MAX_ATTEMPT_TRIES:
                    logger.error("Giving up on two-factor attempt for %s after %d conflicts",
                                 owner, tries, exc_info=True)
                    result = GateResult(passed=False, outcome=Outcome.FAILED)
                    break
                logger.warning("Concurrent update of two-factor record for %s, retrying", owner)

        self._record_outcome(owner, result)
        if result.cookie is not None:
            request.queued_cookies.append(result.cookie)
        if config.strict:
            result.raise_for_failure(config)
        return result

    def _record_outcome(self, owner: OwnerRef, result: GateResult) -> None:
        if result.outcome is Outcome.FAILED:
            events.emit(events.ATTEMPT_FAILED, "Two-factor code rejected", owner=owner, severity="warning")
        elif result.outcome is Outcome.RECOVERY_CODE:
            events.emit(events.RECOVERY_CODE_USED, "Recovery code consumed", owner=owner)
        elif result.outcome is Outcome.SAFE_DEVICE:
            events.emit(events.SAFE_DEVICE_BYPASS, "Trusted device skipped the code", owner=owner, severity="debug")
        if result.cookie is not None:
            events.emit(events.SAFE_DEVICE_ADDED, "Device marked as safe", owner=owner)

    # --- Login-flow predicates ---

    def has_code(self, input: str | None = None) -> Predicate:
        return has_code(self, input or self.settings.input)

    def has_code_or_fails(self, input: str | None = None, message: str | None = None) -> Predicate:
        return has_code_or_fails(self, input or self.settings.input, message)
