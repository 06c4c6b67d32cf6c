"""twofactor — TOTP two-factor authentication with recovery codes and safe devices."""

__version__ = "0.1.0"
