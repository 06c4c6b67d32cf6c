"""Shared fixtures: pinned clock, settings without .env, an enabled record."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from twofactor.config import Settings
from twofactor.models import OwnerRef
from twofactor.record import TwoFactorRecord
from twofactor.service import TwoFactorService
from twofactor.store import MemoryRecordStore

NOW = datetime(2026, 3, 14, 15, 9, 26, tzinfo=UTC)
OWNER = OwnerRef("user", "42")

# RFC 6238 appendix B seeds
RFC_SHA1_SEED = b"12345678901234567890"
RFC_SHA256_SEED = b"12345678901234567890123456789012"
RFC_SHA512_SEED = b"1234567890123456789012345678901234567890123456789012345678901234"


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def enabled_record(settings: Settings) -> TwoFactorRecord:
    record = TwoFactorRecord.provision(OWNER, "alice@example.com", settings)
    assert record.confirm(record.make_code(NOW), NOW, settings)
    return record


@pytest.fixture
def store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def make_service(store: MemoryRecordStore):
    """Build a service around ``store`` and enable 2FA for OWNER."""

    def _make(settings: Settings, enable: bool = True) -> TwoFactorService:
        service = TwoFactorService(store, settings, clock=lambda: NOW)
        record = service.create(OWNER, "alice@example.com")
        if enable:
            assert service.confirm(OWNER, record.make_code(NOW))
        return service

    return _make
