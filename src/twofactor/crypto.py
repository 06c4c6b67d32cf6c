"""AES-256-GCM encryption for shared secrets at rest.

Each ciphertext is bound to the id of the record it belongs to (passed as
GCM associated data), so a secret copied onto another row fails to decrypt.
"""

from __future__ import annotations

import base64
import os
from uuid import UUID

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from twofactor.config import settings

_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM


def _get_key() -> bytes:
    raw = settings.master_key
    if not raw:
        raise RuntimeError("TWOFACTOR_MASTER_KEY not set")
    key = base64.b64decode(raw)
    if len(key) != 32:
        raise ValueError("TWOFACTOR_MASTER_KEY must be 32 bytes (base64-encoded)")
    return key


def encrypt_secret(secret: bytes, record_id: UUID) -> str:
    """Encrypt a shared secret for ``record_id``. Returns base64(nonce + ciphertext)."""
    key = _get_key()
    nonce = os.urandom(_NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, secret, record_id.bytes)
    return base64.b64encode(nonce + ct).decode()


def decrypt_secret(token: str, record_id: UUID) -> bytes:
    """Decrypt a token produced by :func:`encrypt_secret` for the same record.

    Raises ``cryptography.exceptions.InvalidTag`` when the key, the token or
    the record id does not match.
    """
    key = _get_key()
    raw = base64.b64decode(token)
    nonce, ct = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
    return AESGCM(key).decrypt(nonce, ct, record_id.bytes)
