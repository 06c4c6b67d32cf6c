"""Tests for recovery code generation and consumption."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import NOW

from twofactor import recovery
from twofactor.recovery import ALPHABET


def test_generate_codes_shape():
    codes = recovery.generate_codes(count=12, length=8)
    assert len(codes) == 12
    assert len(set(codes)) == 12
    for code in codes:
        assert len(code) == 8
        assert set(code) <= set(ALPHABET)


def test_generate_codes_rejects_impossible_count():
    with pytest.raises(ValueError):
        recovery.generate_codes(count=len(ALPHABET) + 1, length=1)


def test_generate_replaces_existing_set(enabled_record):
    old = [c.code for c in enabled_record.recovery_codes]
    later = NOW + timedelta(days=1)

    new = recovery.generate(enabled_record, later, count=5, length=10)

    assert len(enabled_record.recovery_codes) == 5
    assert enabled_record.recovery_codes_generated_at == later
    assert not set(old) & {c.code for c in new}
    assert all(c.used_at is None for c in new)


def test_consume_marks_used(enabled_record):
    code = enabled_record.recovery_codes[2].code
    assert recovery.consume(enabled_record, code, NOW)
    assert enabled_record.recovery_codes[2].used_at == NOW


def test_consume_twice_fails(enabled_record):
    code = enabled_record.recovery_codes[0].code
    assert recovery.consume(enabled_record, code, NOW)
    assert not recovery.consume(enabled_record, code, NOW + timedelta(seconds=1))
    assert enabled_record.recovery_codes[0].used_at == NOW


def test_consume_unknown_code_returns_false(enabled_record):
    assert not recovery.consume(enabled_record, "NOTACODE00", NOW)
    assert not recovery.consume(enabled_record, "", NOW)
    assert recovery.has_unused(enabled_record)


def test_consume_without_codes_returns_false(enabled_record):
    enabled_record.recovery_codes = None
    assert not recovery.consume(enabled_record, "ANYTHING00", NOW)


def test_unused_tracks_consumption(enabled_record):
    total = len(enabled_record.recovery_codes)
    for entry in list(enabled_record.recovery_codes):
        recovery.consume(enabled_record, entry.code, NOW)
        total -= 1
        assert len(recovery.unused(enabled_record)) == total
    assert not recovery.has_unused(enabled_record)


def test_codes_do_not_expire(enabled_record):
    code = enabled_record.recovery_codes[0].code
    assert recovery.consume(enabled_record, code, NOW + timedelta(days=3650))
