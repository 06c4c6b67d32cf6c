"""Record persistence.

Stores apply compare-and-swap on ``TwoFactorRecord.version``: ``save`` raises
:class:`StorageConflict` when the stored version moved on since the record
was loaded, and bumps the caller's version when the write succeeds.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol
from uuid import UUID

from psycopg.types.json import Jsonb
from pydantic import SecretBytes

from twofactor import crypto
from twofactor.clock import utcnow
from twofactor.db import transaction
from twofactor.exceptions import StorageConflict
from twofactor.models import OwnerRef, RecoveryCode, SafeDevice
from twofactor.record import TwoFactorRecord

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    def load(self, owner: OwnerRef) -> TwoFactorRecord | None: ...

    def save(self, record: TwoFactorRecord) -> None: ...

    def delete(self, record: TwoFactorRecord) -> None: ...


class MemoryRecordStore:
    """In-process store; keeps deep copies so callers can't mutate it behind its back."""

    def __init__(self) -> None:
        self._records: dict[OwnerRef, TwoFactorRecord] = {}
        self._lock = threading.Lock()

    def load(self, owner: OwnerRef) -> TwoFactorRecord | None:
        with self._lock:
            stored = self._records.get(owner)
            return stored.model_copy(deep=True) if stored else None

    def save(self, record: TwoFactorRecord) -> None:
        with self._lock:
            stored = self._records.get(record.owner)
            if stored is None:
                expected_version, same_record = 0, True
            else:
                expected_version, same_record = stored.version, stored.id == record.id
            if not same_record or record.version != expected_version:
                raise StorageConflict(f"Stale two-factor record for {record.owner}")

            record.version += 1
            record.updated_at = utcnow()
            self._records[record.owner] = record.model_copy(deep=True)

    def delete(self, record: TwoFactorRecord) -> None:
        with self._lock:
            stored = self._records.get(record.owner)
            if stored is not None and stored.id == record.id:
                del self._records[record.owner]


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS two_factor_authentications (
    id UUID PRIMARY KEY,
    authenticatable_type TEXT NOT NULL,
    authenticatable_id TEXT NOT NULL,
    shared_secret TEXT NOT NULL,
    enabled_at TIMESTAMPTZ,
    label TEXT NOT NULL,
    digits SMALLINT NOT NULL DEFAULT 6,
    seconds SMALLINT NOT NULL DEFAULT 30,
    "window" SMALLINT NOT NULL DEFAULT 0,
    algorithm VARCHAR(16) NOT NULL DEFAULT 'sha1',
    recovery_codes JSONB,
    recovery_codes_generated_at TIMESTAMPTZ,
    safe_devices JSONB,
    version INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (authenticatable_type, authenticatable_id)
)
"""

_INSERT_SQL = """
INSERT INTO two_factor_authentications
    (id, authenticatable_type, authenticatable_id, shared_secret, enabled_at,
     label, digits, seconds, "window", algorithm, recovery_codes,
     recovery_codes_generated_at, safe_devices, version, created_at, updated_at)
VALUES
    (%(id)s, %(owner_type)s, %(owner_id)s, %(shared_secret)s, %(enabled_at)s,
     %(label)s, %(digits)s, %(seconds)s, %(window)s, %(algorithm)s, %(recovery_codes)s,
     %(recovery_codes_generated_at)s, %(safe_devices)s, 1, %(created_at)s, %(updated_at)s)
ON CONFLICT DO NOTHING
"""

_UPDATE_SQL = """
UPDATE two_factor_authentications
SET shared_secret = %(shared_secret)s,
    enabled_at = %(enabled_at)s,
    label = %(label)s,
    digits = %(digits)s,
    seconds = %(seconds)s,
    "window" = %(window)s,
    algorithm = %(algorithm)s,
    recovery_codes = %(recovery_codes)s,
    recovery_codes_generated_at = %(recovery_codes_generated_at)s,
    safe_devices = %(safe_devices)s,
    version = version + 1,
    updated_at = %(updated_at)s
WHERE id = %(id)s AND version = %(version)s
"""


def record_to_params(record: TwoFactorRecord) -> dict[str, Any]:
    """Map a record to SQL parameters, encrypting the shared secret."""
    codes = record.recovery_codes
    return {
        "id": record.id,
        "owner_type": record.owner_type,
        "owner_id": record.owner_id,
        "shared_secret": crypto.encrypt_secret(record.secret, record.id),
        "enabled_at": record.enabled_at,
        "label": record.label,
        "digits": record.digits,
        "seconds": record.seconds,
        "window": record.window,
        "algorithm": record.algorithm.value,
        "recovery_codes": None if codes is None else Jsonb([c.model_dump(mode="json") for c in codes]),
        "recovery_codes_generated_at": record.recovery_codes_generated_at,
        "safe_devices": Jsonb([d.model_dump(mode="json") for d in record.safe_devices]),
        "version": record.version,
        "created_at": record.created_at,
        "updated_at": utcnow(),
    }


def row_to_record(row: dict[str, Any]) -> TwoFactorRecord:
    """Rebuild a record from a ``two_factor_authentications`` row."""
    codes = row.get("recovery_codes")
    record_id = UUID(str(row["id"]))
    return TwoFactorRecord(
        id=record_id,
        owner_type=row["authenticatable_type"],
        owner_id=row["authenticatable_id"],
        shared_secret=SecretBytes(crypto.decrypt_secret(row["shared_secret"], record_id)),
        enabled_at=row["enabled_at"],
        label=row["label"],
        digits=row["digits"],
        seconds=row["seconds"],
        window=row["window"],
        algorithm=row["algorithm"],
        recovery_codes=None if codes is None else [RecoveryCode.model_validate(c) for c in codes],
        recovery_codes_generated_at=row["recovery_codes_generated_at"],
        safe_devices=[SafeDevice.model_validate(d) for d in row.get("safe_devices") or []],
        version=row["version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresRecordStore:
    """Store backed by the ``two_factor_authentications`` table."""

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    def create_schema(self) -> None:
        with transaction(self.database_url) as cur:
            cur.execute(SCHEMA_SQL)
        logger.info("Ensured table two_factor_authentications exists")

    def load(self, owner: OwnerRef) -> TwoFactorRecord | None:
        with transaction(self.database_url) as cur:
            cur.execute(
                """SELECT * FROM two_factor_authentications
                   WHERE authenticatable_type = %s AND authenticatable_id = %s""",
                (owner.owner_type, owner.owner_id),
            )
            row = cur.fetchone()
        return row_to_record(row) if row else None

    def save(self, record: TwoFactorRecord) -> None:
        params = record_to_params(record)
        with transaction(self.database_url) as cur:
            cur.execute(_INSERT_SQL if record.version == 0 else _UPDATE_SQL, params)
            if cur.rowcount != 1:
                raise StorageConflict(f"Stale two-factor record for {record.owner}")
        record.version += 1
        record.updated_at = params["updated_at"]

    def delete(self, record: TwoFactorRecord) -> None:
        with transaction(self.database_url) as cur:
            cur.execute("DELETE FROM two_factor_authentications WHERE id = %s", (record.id,))
