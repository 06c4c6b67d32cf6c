"""Exception types raised by the two-factor engine."""

from __future__ import annotations

DEFAULT_INVALID_CODE_MESSAGE = "The Code is invalid or has expired."


class TwoFactorError(Exception):
    """Base class for all two-factor errors."""


class InvalidSecretFormat(TwoFactorError, ValueError):
    """A shared secret is not valid Base32."""


class InvalidCode(TwoFactorError):
    """A submitted code failed validation.

    Carries the request field it refers to so callers can render it as a
    field-scoped validation error.
    """

    def __init__(self, field: str = "2fa_code", message: str | None = None) -> None:
        self.field = field
        self.message = message or DEFAULT_INVALID_CODE_MESSAGE
        super().__init__(self.message)

    def errors(self) -> dict[str, list[str]]:
        return {self.field: [self.message]}


class StorageConflict(TwoFactorError):
    """The record was modified concurrently; the write was rejected."""
