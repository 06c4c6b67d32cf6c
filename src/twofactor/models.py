"""Value types shared by the record, the gate and the stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class CodeKind(StrEnum):
    TOTP = "totp"
    RECOVERY_CODE = "recovery_code"


@dataclass(frozen=True)
class OwnerRef:
    """Polymorphic reference to the identity a record secures."""

    owner_type: str
    owner_id: str

    def __str__(self) -> str:
        return f"{self.owner_type}:{self.owner_id}"


class RecoveryCode(BaseModel):
    """A single-use fallback code."""

    code: str
    used_at: datetime | None = None

    @property
    def is_used(self) -> bool:
        return self.used_at is not None


class SafeDevice(BaseModel):
    """A device trusted to skip the second factor until ``expires_at``."""

    code: str  # sha256 hex of the token handed to the client
    ip: str
    expires_at: datetime
    added_at: datetime


@dataclass
class Cookie:
    """An outbound client credential; ``max_age`` is in minutes."""

    name: str
    value: str
    max_age: int


@dataclass
class RequestContext:
    """The parts of an inbound login request the gate looks at."""

    ip: str
    input: dict[str, Any] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    queued_cookies: list[Cookie] = field(default_factory=list)
