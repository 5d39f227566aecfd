"""Group registry: CRUD and membership.

Membership is recorded on both sides (``Group.members`` and
``UserAuthorizationProfile.group_ids``).  Removing a member, deactivating
or deleting a group takes away its permissions and regions on the very
next check.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from geoauthz.auth.permissions import is_known_permission
from geoauthz.errors import InvalidPermissionError, NotFoundError, Outcome
from geoauthz.models.group import Group
from geoauthz.services.state import AuthzState, serialized
from geoauthz.utils.activity import log_activity

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"name", "description", "permissions", "assigned_regions", "managers", "is_active"}


def _unknown_permissions(permission_ids: Iterable[str]) -> list[str]:
    unknown = []
    for pid in permission_ids:
        # Prefix wildcards such as "gis.*" are allowed
        if pid == "*" or pid.endswith(".*") or is_known_permission(pid):
            continue
        unknown.append(pid)
    return sorted(unknown)


class GroupRegistry:
    def __init__(self, state: AuthzState):
        self.state = state

    def get(self, group_id: str) -> Group | None:
        return self.state.groups.get(group_id)

    def list_groups(self, include_inactive: bool = True) -> list[Group]:
        groups = [g for g in self.state.groups.values() if include_inactive or g.is_active]
        return sorted(groups, key=lambda g: g.name.lower())

    def groups_of(self, user_id: str) -> list[Group]:
        profile = self.state.profiles.get(user_id)
        group_ids = profile.group_ids if profile else frozenset()
        return [
            g for g in self.state.groups.values()
            if g.id in group_ids or user_id in g.members
        ]

    @serialized
    async def create(
        self,
        name: str,
        created_by: str,
        *,
        description: str | None = None,
        permissions: Iterable[str] = (),
        assigned_regions: Iterable[str] = (),
        members: Iterable[str] = (),
        managers: Iterable[str] = (),
    ) -> Outcome[Group]:
        permissions = frozenset(permissions)
        unknown = _unknown_permissions(permissions)
        if unknown:
            return Outcome.failure(InvalidPermissionError(unknown))

        now = self.state.now()
        group = await self.state.put_group(
            Group(
                name=name,
                description=description,
                permissions=permissions,
                assigned_regions=frozenset(assigned_regions),
                members=frozenset(),
                managers=frozenset(managers),
                created_by=created_by,
                created_at=now,
                updated_at=now,
            )
        )
        for user_id in members:
            group = await self._add_member(group, user_id)

        await log_activity(
            self.state.store, created_by,
            action="created", entity_type="group", entity_id=group.id,
            summary=f"Created group {name}",
        )
        logger.info("Group %s (%s) created by %s", group.id, name, created_by)
        return Outcome.success(group)

    @serialized
    async def update(self, group_id: str, updated_by: str, **changes) -> Outcome[Group]:
        group = self.state.groups.get(group_id)
        if group is None:
            return Outcome.failure(NotFoundError("Group", group_id))

        update = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
        if "permissions" in update:
            update["permissions"] = frozenset(update["permissions"])
            unknown = _unknown_permissions(update["permissions"])
            if unknown:
                return Outcome.failure(InvalidPermissionError(unknown))
        for key in ("assigned_regions", "managers"):
            if key in update:
                update[key] = frozenset(update[key])
        update["updated_at"] = self.state.now()

        # Re-validate so region names are normalised
        updated = await self.state.put_group(
            Group.model_validate({**group.model_dump(), **update})
        )
        await log_activity(
            self.state.store, updated_by,
            action="updated", entity_type="group", entity_id=group_id,
            details={"fields": sorted(k for k in update if k != "updated_at")},
        )
        return Outcome.success(updated)

    @serialized
    async def delete(self, group_id: str, deleted_by: str) -> Outcome[Group]:
        group = self.state.groups.get(group_id)
        if group is None:
            return Outcome.failure(NotFoundError("Group", group_id))

        await self.state.drop_group(group_id)
        # A stale group id on a profile grants nothing once the group is gone
        for profile in list(self.state.profiles.values()):
            if group_id in profile.group_ids:
                await self.state.put_profile(profile.without_group(group_id))

        await log_activity(
            self.state.store, deleted_by,
            action="deleted", entity_type="group", entity_id=group_id,
            summary=f"Deleted group {group.name}",
        )
        logger.info("Group %s deleted by %s", group_id, deleted_by)
        return Outcome.success(group)

    async def _add_member(self, group: Group, user_id: str) -> Group:
        updated = await self.state.put_group(
            group.model_copy(
                update={"members": group.members | {user_id}, "updated_at": self.state.now()}
            )
        )
        await self.state.put_profile(self.state.profile_or_default(user_id).with_group(group.id))
        return updated

    @serialized
    async def add_member(self, group_id: str, user_id: str, actor_id: str) -> Outcome[Group]:
        group = self.state.groups.get(group_id)
        if group is None:
            return Outcome.failure(NotFoundError("Group", group_id))

        updated = await self._add_member(group, user_id)
        await log_activity(
            self.state.store, actor_id,
            action="member_added", entity_type="group", entity_id=group_id,
            summary=f"Added {user_id} to {group.name}",
        )
        return Outcome.success(updated)

    @serialized
    async def remove_member(self, group_id: str, user_id: str, actor_id: str) -> Outcome[Group]:
        group = self.state.groups.get(group_id)
        if group is None:
            return Outcome.failure(NotFoundError("Group", group_id))

        updated = await self.state.put_group(
            group.model_copy(
                update={
                    "members": group.members - {user_id},
                    "managers": group.managers - {user_id},
                    "updated_at": self.state.now(),
                }
            )
        )
        profile = self.state.profiles.get(user_id)
        if profile is not None and group_id in profile.group_ids:
            await self.state.put_profile(profile.without_group(group_id))

        await log_activity(
            self.state.store, actor_id,
            action="member_removed", entity_type="group", entity_id=group_id,
            summary=f"Removed {user_id} from {group.name}",
        )
        return Outcome.success(updated)
