"""Database connection helpers."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from typing import Any

import psycopg
import psycopg.rows

from twofactor.config import settings


def sync_conn(database_url: str | None = None) -> psycopg.Connection[dict[str, Any]]:
    """Open a synchronous connection using project settings."""
    return psycopg.connect(database_url or settings.database_url, row_factory=psycopg.rows.dict_row)


@contextlib.contextmanager
def transaction(database_url: str | None = None) -> Iterator[psycopg.Cursor[dict[str, Any]]]:
    """Yield a cursor inside a transaction; commits on success, rolls back on error."""
    with sync_conn(database_url) as conn:
        with conn.transaction():
            with conn.cursor() as cur:
                yield cur
