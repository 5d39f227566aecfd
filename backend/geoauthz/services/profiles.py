"""User authorization profiles: role, direct permissions, assigned regions and zones."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from geoauthz.auth.permissions import is_known_permission
from geoauthz.auth.resolution import EffectivePermissions, effective_permissions
from geoauthz.errors import (
    InvalidPermissionError,
    InvalidRangeError,
    InvalidValueError,
    NotFoundError,
    Outcome,
)
from geoauthz.models.user import DirectPermission, Role, UserAuthorizationProfile
from geoauthz.regions.access import effective_regions
from geoauthz.regions.catalog import REGION_ZONES, canonical_region, canonical_zone
from geoauthz.services.state import AuthzState, serialized
from geoauthz.utils.activity import log_activity
from geoauthz.utils.clock import ensure_aware

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, state: AuthzState):
        self.state = state

    def get(self, user_id: str) -> UserAuthorizationProfile | None:
        return self.state.profiles.get(user_id)

    def list_profiles(self) -> list[UserAuthorizationProfile]:
        return sorted(self.state.profiles.values(), key=lambda p: p.user_id)

    def effective_permissions(self, user_id: str) -> EffectivePermissions:
        profile = self.state.profile_or_default(user_id)
        return effective_permissions(profile, self.state.groups_for(profile), now=self.state.now())

    def effective_regions(self, user_id: str) -> frozenset[str]:
        profile = self.state.profile_or_default(user_id)
        return effective_regions(
            profile,
            self.state.grants_for(user_id),
            self.state.groups_for(profile),
            now=self.state.now(),
        )

    @serialized
    async def upsert(
        self, profile: UserAuthorizationProfile, actor_id: str | None = None
    ) -> Outcome[UserAuthorizationProfile]:
        await self.state.put_profile(profile)
        if actor_id:
            await log_activity(
                self.state.store, actor_id,
                action="updated", entity_type="profile", entity_id=profile.user_id,
            )
        return Outcome.success(profile)

    @serialized
    async def set_role(
        self, user_id: str, role: Role | str, actor_id: str
    ) -> Outcome[UserAuthorizationProfile]:
        profile = self.state.profiles.get(user_id)
        if profile is None:
            return Outcome.failure(NotFoundError("User profile", user_id))
        try:
            role = Role(role)
        except ValueError:
            return Outcome.failure(InvalidValueError("role", role, [r.value for r in Role]))
        updated = await self.state.put_profile(profile.model_copy(update={"role": role}))
        await log_activity(
            self.state.store, actor_id,
            action="role_changed", entity_type="profile", entity_id=user_id,
            summary=f"{profile.role.value} -> {updated.role.value}",
        )
        logger.info("Role of %s changed to %s by %s", user_id, updated.role.value, actor_id)
        return Outcome.success(updated)

    @serialized
    async def assign_regions(
        self, user_id: str, regions: Iterable[str], actor_id: str
    ) -> Outcome[UserAuthorizationProfile]:
        profile = self.state.profile_or_default(user_id)
        added = frozenset(canonical_region(r) for r in regions)
        updated = await self.state.put_profile(
            profile.model_copy(update={"assigned_regions": profile.assigned_regions | added})
        )
        await log_activity(
            self.state.store, actor_id,
            action="regions_assigned", entity_type="profile", entity_id=user_id,
            summary=", ".join(sorted(added)),
        )
        return Outcome.success(updated)

    @serialized
    async def unassign_region(
        self, user_id: str, region: str, actor_id: str
    ) -> Outcome[UserAuthorizationProfile]:
        profile = self.state.profiles.get(user_id)
        if profile is None:
            return Outcome.failure(NotFoundError("User profile", user_id))
        updated = await self.state.put_profile(profile.without_region(region))
        await log_activity(
            self.state.store, actor_id,
            action="region_unassigned", entity_type="profile", entity_id=user_id,
            summary=canonical_region(region),
        )
        return Outcome.success(updated)

    @serialized
    async def assign_zones(
        self, user_id: str, zones: Iterable[str], actor_id: str
    ) -> Outcome[UserAuthorizationProfile]:
        """Replace the user's zone assignment.  Every state in a zone becomes accessible."""
        wanted = frozenset(canonical_zone(z) for z in zones)
        for zone in sorted(wanted):
            if zone not in REGION_ZONES:
                return Outcome.failure(NotFoundError("Zone", zone))

        profile = self.state.profile_or_default(user_id)
        updated = await self.state.put_profile(
            profile.model_copy(update={"assigned_zones": wanted})
        )
        await log_activity(
            self.state.store, actor_id,
            action="zones_assigned", entity_type="profile", entity_id=user_id,
            summary=", ".join(sorted(wanted)),
        )
        logger.info("Zones of %s set to %s by %s", user_id, sorted(wanted), actor_id)
        return Outcome.success(updated)

    @serialized
    async def remove_zones(self, user_id: str, actor_id: str) -> Outcome[UserAuthorizationProfile]:
        profile = self.state.profiles.get(user_id)
        if profile is None or not profile.assigned_zones:
            return Outcome.failure(NotFoundError("Zone assignment", user_id))
        updated = await self.state.put_profile(
            profile.model_copy(update={"assigned_zones": frozenset()})
        )
        await log_activity(
            self.state.store, actor_id,
            action="zones_removed", entity_type="profile", entity_id=user_id,
            summary=", ".join(sorted(profile.assigned_zones)),
        )
        return Outcome.success(updated)

    @serialized
    async def grant_permission(
        self,
        user_id: str,
        permission_id: str,
        actor_id: str,
        expires_at: datetime | None = None,
    ) -> Outcome[UserAuthorizationProfile]:
        """Add a direct permission, optionally time-boxed."""
        if not is_known_permission(permission_id):
            return Outcome.failure(InvalidPermissionError([permission_id]))
        if expires_at is not None:
            expires_at = ensure_aware(expires_at)
            if expires_at <= self.state.now():
                return Outcome.failure(InvalidRangeError())

        profile = self.state.profile_or_default(user_id)
        kept = tuple(dp for dp in profile.direct_permissions if dp.permission_id != permission_id)
        direct = kept + (DirectPermission(permission_id=permission_id, expires_at=expires_at),)
        updated = await self.state.put_profile(
            profile.model_copy(update={"direct_permissions": direct})
        )
        await log_activity(
            self.state.store, actor_id,
            action="permission_granted", entity_type="profile", entity_id=user_id,
            summary=permission_id,
            details={"expires_at": expires_at.isoformat()} if expires_at else None,
        )
        return Outcome.success(updated)

    @serialized
    async def revoke_permission(
        self, user_id: str, permission_id: str, actor_id: str
    ) -> Outcome[UserAuthorizationProfile]:
        profile = self.state.profiles.get(user_id)
        if profile is None:
            return Outcome.failure(NotFoundError("User profile", user_id))
        direct = tuple(dp for dp in profile.direct_permissions if dp.permission_id != permission_id)
        updated = await self.state.put_profile(
            profile.model_copy(update={"direct_permissions": direct})
        )
        await log_activity(
            self.state.store, actor_id,
            action="permission_revoked", entity_type="profile", entity_id=user_id,
            summary=permission_id,
        )
        return Outcome.success(updated)
