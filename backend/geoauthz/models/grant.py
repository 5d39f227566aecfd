"""Temporary access grants.

A grant is active from creation until ``expires_at`` passes or it is
revoked, whichever comes first.  Status is always computed against a
supplied ``now``; nothing is cached, so no background sweep is required.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from geoauthz.regions.catalog import canonical_region
from geoauthz.utils.clock import ensure_aware


class GrantStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


class AccessLevel(str, enum.Enum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"


class TimeRemaining(BaseModel):
    expired: bool
    display: str
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    total_seconds: int = 0


class TemporaryAccessGrant(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    region: str
    resource_type: str | None = None
    resource_id: str | None = None
    access_level: AccessLevel = AccessLevel.READ
    granted_by: str
    granted_at: datetime
    expires_at: datetime
    reason: str | None = None
    revoked_at: datetime | None = None
    revoked_by: str | None = None
    revoked_reason: str | None = None

    @field_validator("region")
    @classmethod
    def _canonical_region(cls, v: str) -> str:
        return canonical_region(v)

    @field_validator("granted_at", "expires_at", "revoked_at")
    @classmethod
    def _aware(cls, v: datetime | None) -> datetime | None:
        return ensure_aware(v) if v is not None else None

    @model_validator(mode="after")
    def _check_range(self) -> TemporaryAccessGrant:
        if self.expires_at <= self.granted_at:
            raise ValueError("expires_at must be after granted_at")
        return self

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_active(self, now: datetime) -> bool:
        return self.revoked_at is None and now < self.expires_at

    def status(self, now: datetime) -> GrantStatus:
        if self.revoked_at is not None:
            return GrantStatus.REVOKED
        if now >= self.expires_at:
            return GrantStatus.EXPIRED
        return GrantStatus.ACTIVE

    def time_remaining(self, now: datetime) -> TimeRemaining:
        """Countdown for display, e.g. ``"1d 2h 5m"`` or ``"4m 10s"``."""
        total = int((self.expires_at - now).total_seconds())
        if total <= 0 or self.revoked_at is not None:
            return TimeRemaining(expired=True, display="Expired")

        days, rem = divmod(total, 86400)
        hours, rem = divmod(rem, 3600)
        minutes, seconds = divmod(rem, 60)

        if days > 0:
            display = f"{days}d {hours}h {minutes}m"
        elif hours > 0:
            display = f"{hours}h {minutes}m {seconds}s"
        elif minutes > 0:
            display = f"{minutes}m {seconds}s"
        else:
            display = f"{seconds}s"

        return TimeRemaining(
            expired=False,
            display=display,
            days=days,
            hours=hours,
            minutes=minutes,
            seconds=seconds,
            total_seconds=total,
        )
