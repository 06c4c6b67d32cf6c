"""Tests for the service lifecycle: create, confirm, regenerate, disable."""

from __future__ import annotations

import logging

import pytest
from conftest import NOW, OWNER

from twofactor.exceptions import TwoFactorError
from twofactor.service import TwoFactorService


def test_create_persists_unconfirmed_record(store, settings):
    service = TwoFactorService(store, settings, clock=lambda: NOW)
    record = service.create(OWNER, "alice@example.com")

    stored = store.load(OWNER)
    assert stored.id == record.id
    assert stored.secret == record.secret
    assert not stored.is_enabled
    assert stored.created_at == NOW


def test_create_again_rotates_unconfirmed_secret(store, settings):
    service = TwoFactorService(store, settings, clock=lambda: NOW)
    first = service.create(OWNER, "alice@example.com")
    second = service.create(OWNER, "alice@work.example.com")

    assert second.id == first.id
    assert second.secret != first.secret
    assert store.load(OWNER).label == "alice@work.example.com"


def test_create_refused_when_enabled(make_service, settings):
    service = make_service(settings)
    with pytest.raises(TwoFactorError):
        service.create(OWNER, "alice@example.com")


def test_confirm(store, settings):
    service = TwoFactorService(store, settings, clock=lambda: NOW)
    record = service.create(OWNER, "alice@example.com")

    assert not service.confirm(OWNER, "000000" if record.make_code(NOW) != "000000" else "111111")
    assert not store.load(OWNER).is_enabled

    assert service.confirm(OWNER, record.make_code(NOW))
    stored = store.load(OWNER)
    assert stored.enabled_at == NOW
    assert len(stored.recovery_codes) == 10


def test_confirm_unknown_owner(store, settings):
    service = TwoFactorService(store, settings, clock=lambda: NOW)
    assert not service.confirm(OWNER, "123456")


def test_regenerate_recovery_codes(make_service, store, settings):
    service = make_service(settings)
    old = {c.code for c in store.load(OWNER).recovery_codes}

    codes = service.regenerate_recovery_codes(OWNER)

    assert len(codes) == 10
    assert not old & set(codes)
    assert [c.code for c in store.load(OWNER).recovery_codes] == codes


def test_regenerate_requires_enabled_record(make_service, settings):
    service = make_service(settings, enable=False)
    with pytest.raises(TwoFactorError):
        service.regenerate_recovery_codes(OWNER)


def test_disable_keeps_wiped_record(make_service, store, settings):
    service = make_service(settings)
    service.disable(OWNER)

    stored = store.load(OWNER)
    assert stored is not None
    assert not stored.is_enabled
    assert stored.secret == b""
    assert stored.recovery_codes is None


def test_disable_unknown_owner_is_noop(store, settings):
    TwoFactorService(store, settings, clock=lambda: NOW).disable(OWNER)
    assert store.load(OWNER) is None


def test_lifecycle_events_are_logged(store, settings, caplog):
    caplog.set_level(logging.INFO, logger="twofactor.events")
    service = TwoFactorService(store, settings, clock=lambda: NOW)
    record = service.create(OWNER, "alice@example.com")
    service.confirm(OWNER, record.make_code(NOW))
    service.disable(OWNER)

    types = [r.event_type for r in caplog.records if hasattr(r, "event_type")]
    assert types == ["two_factor.provisioned", "two_factor.enabled", "two_factor.disabled"]
    assert all(r.owner == "user:42" for r in caplog.records if hasattr(r, "owner"))
