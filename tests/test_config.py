"""Tests for configuration loading."""

from __future__ import annotations

import hashlib

import pytest
from pydantic import ValidationError

from twofactor.config import Algorithm, Settings, load_settings


def test_settings_defaults():
    s = Settings(_env_file=None)
    assert s.enabled is True
    assert (s.digits, s.seconds, s.window) == (6, 30, 0)
    assert s.algorithm == Algorithm.SHA1
    assert s.input == "2fa_code"
    assert s.recovery_codes.enabled is True
    assert s.recovery_codes.count == 10
    assert s.recovery_codes.length == 10
    assert s.safe_devices.enabled is False
    assert s.safe_devices.cookie == "_2fa_remember"
    assert s.safe_devices.max == 3
    assert s.safe_devices.expiration_days == 14
    assert s.safe_devices.expiration_minutes == 20160


def test_algorithm_enum():
    assert Algorithm.SHA256 == "sha256"
    assert Algorithm.SHA512.digest is hashlib.sha512
    assert len(Algorithm) == 3


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TWOFACTOR_DIGITS", "8")
    monkeypatch.setenv("TWOFACTOR_ALGORITHM", "sha256")
    monkeypatch.setenv("TWOFACTOR_SAFE_DEVICES__ENABLED", "true")
    monkeypatch.setenv("TWOFACTOR_SAFE_DEVICES__MAX", "5")

    s = Settings(_env_file=None)
    assert s.digits == 8
    assert s.algorithm == Algorithm.SHA256
    assert s.safe_devices.enabled is True
    assert s.safe_devices.max == 5


@pytest.mark.parametrize("digits", [5, 9])
def test_digits_range(digits):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, digits=digits)


def test_unknown_algorithm_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, algorithm="md5")


def test_load_settings_from_yaml(tmp_path):
    path = tmp_path / "twofactor.yaml"
    path.write_text(
        "issuer: Acme\n"
        "window: 1\n"
        "recovery_codes:\n"
        "  count: 8\n"
        "safe_devices:\n"
        "  enabled: true\n"
        "  expiration_days: 30\n"
    )
    s = load_settings(path)
    assert s.issuer == "Acme"
    assert s.window == 1
    assert s.recovery_codes.count == 8
    assert s.recovery_codes.length == 10
    assert s.safe_devices.enabled is True
    assert s.safe_devices.expiration_minutes == 30 * 1440


def test_load_empty_yaml(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_settings(path).digits == 6


def test_load_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yaml")
