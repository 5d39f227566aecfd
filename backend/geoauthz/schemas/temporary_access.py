"""Pydantic schemas for temporary access grants."""

from datetime import datetime

from pydantic import BaseModel

from geoauthz.models.grant import AccessLevel, GrantStatus, TemporaryAccessGrant, TimeRemaining


class GrantCreate(BaseModel):
    user_id: str
    region: str
    expires_at: datetime
    resource_type: str | None = None
    resource_id: str | None = None
    access_level: AccessLevel = AccessLevel.READ
    reason: str | None = None


class GrantRevoke(BaseModel):
    reason: str | None = None


class GrantExtend(BaseModel):
    expires_at: datetime


class GrantOut(BaseModel):
    grant: TemporaryAccessGrant
    status: GrantStatus
    time_remaining: TimeRemaining

    @classmethod
    def build(cls, grant: TemporaryAccessGrant, now: datetime) -> "GrantOut":
        return cls(grant=grant, status=grant.status(now), time_remaining=grant.time_remaining(now))


class GrantListOut(BaseModel):
    items: list[GrantOut]
    total: int
