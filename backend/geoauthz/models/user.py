"""User authorization profile: role, direct permissions, regions, zones, groups."""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from geoauthz.regions.catalog import canonical_region, canonical_zone
from geoauthz.utils.clock import ensure_aware


class Role(str, enum.Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    TECHNICIAN = "Technician"
    USER = "User"

    @classmethod
    def _missing_(cls, value):
        # Accept "admin", "ADMIN", " Manager " etc.
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None


class DirectPermission(BaseModel):
    """A permission granted to exactly one user, optionally time-boxed."""
    model_config = ConfigDict(frozen=True)

    permission_id: str
    expires_at: datetime | None = None

    @field_validator("expires_at")
    @classmethod
    def _aware(cls, v: datetime | None) -> datetime | None:
        return ensure_aware(v) if v is not None else None

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or now < self.expires_at


class UserAuthorizationProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role = Role.USER
    direct_permissions: tuple[DirectPermission, ...] = ()
    assigned_regions: frozenset[str] = frozenset()
    # Zone names; every state of an assigned zone is accessible
    assigned_zones: frozenset[str] = frozenset()
    group_ids: frozenset[str] = frozenset()

    @field_validator("direct_permissions", mode="before")
    @classmethod
    def _coerce_direct(cls, v):
        # Bare ids are permanent grants
        if v is None:
            return ()
        return tuple(
            {"permission_id": item} if isinstance(item, str) else item
            for item in v
        )

    @field_validator("assigned_regions", mode="before")
    @classmethod
    def _canonical_regions(cls, v):
        if v is None:
            return frozenset()
        return frozenset(canonical_region(r) for r in v)

    @field_validator("assigned_zones", mode="before")
    @classmethod
    def _canonical_zones(cls, v):
        if v is None:
            return frozenset()
        return frozenset(canonical_zone(z) for z in v)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def with_region(self, region: str) -> UserAuthorizationProfile:
        return self.model_copy(
            update={"assigned_regions": self.assigned_regions | {canonical_region(region)}}
        )

    def without_region(self, region: str) -> UserAuthorizationProfile:
        return self.model_copy(
            update={"assigned_regions": self.assigned_regions - {canonical_region(region)}}
        )

    def with_group(self, group_id: str) -> UserAuthorizationProfile:
        return self.model_copy(update={"group_ids": self.group_ids | {group_id}})

    def without_group(self, group_id: str) -> UserAuthorizationProfile:
        return self.model_copy(update={"group_ids": self.group_ids - {group_id}})
