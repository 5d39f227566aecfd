"""Session arena: every authorization record, loaded once.

Records are immutable pydantic models.  A mutation builds a new record
with ``model_copy``, writes it to the store and only then swaps it into
the dict in one step.  Readers only ever see the old record or the new
one, and a failed store write leaves the arena as it was.

Mutations run under ``write_lock`` so a check made before the store write
(a duplicate pending request or grant, a request that is no longer
pending) still holds when the swap happens.  Reads never take the lock.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from datetime import datetime

from geoauthz.models import (
    Group,
    RegionRequest,
    TemporaryAccessGrant,
    UserAuthorizationProfile,
)
from geoauthz.store.base import AuthzStore
from geoauthz.utils.clock import utcnow

logger = logging.getLogger(__name__)


def serialized(method):
    """Run a service mutation under its arena's ``write_lock``.

    The lock is not re-entrant: a serialized method must not call another.
    """

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        async with self.state.write_lock:
            return await method(self, *args, **kwargs)

    return wrapper


class AuthzState:
    def __init__(self, store: AuthzStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self.profiles: dict[str, UserAuthorizationProfile] = {}
        self.groups: dict[str, Group] = {}
        self.grants: dict[str, TemporaryAccessGrant] = {}
        self.requests: dict[str, RegionRequest] = {}
        self.write_lock = asyncio.Lock()

    def now(self) -> datetime:
        return self.clock()

    async def load(self) -> None:
        """Replace the arena with the store's current contents."""
        profiles = await self.store.load_profiles()
        groups = await self.store.load_groups()
        grants = await self.store.load_grants()
        requests = await self.store.load_requests()

        self.profiles = {p.user_id: p for p in profiles}
        self.groups = {g.id: g for g in groups}
        self.grants = {g.id: g for g in grants}
        self.requests = {r.id: r for r in requests}
        logger.info(
            "Loaded %d profiles, %d groups, %d grants, %d region requests",
            len(self.profiles), len(self.groups), len(self.grants), len(self.requests),
        )

    async def refresh_profile(self, user_id: str) -> UserAuthorizationProfile | None:
        """Reload one profile from the store (login, admin change)."""
        profile = await self.store.load_user_profile(user_id)
        if profile is None:
            self.profiles.pop(user_id, None)
        else:
            self.profiles[user_id] = profile
        return profile

    # ── Persist, then swap ───────────────────────────────────

    async def put_profile(self, profile: UserAuthorizationProfile) -> UserAuthorizationProfile:
        await self.store.save_profile(profile)
        self.profiles[profile.user_id] = profile
        return profile

    async def put_group(self, group: Group) -> Group:
        await self.store.save_group(group)
        self.groups[group.id] = group
        return group

    async def drop_group(self, group_id: str) -> None:
        await self.store.delete_group(group_id)
        self.groups.pop(group_id, None)

    async def put_grant(self, grant: TemporaryAccessGrant) -> TemporaryAccessGrant:
        await self.store.save_grant(grant)
        self.grants[grant.id] = grant
        return grant

    async def put_request(self, request: RegionRequest) -> RegionRequest:
        await self.store.save_request(request)
        self.requests[request.id] = request
        return request

    def profile_or_default(self, user_id: str) -> UserAuthorizationProfile:
        return self.profiles.get(user_id) or UserAuthorizationProfile(user_id=user_id)

    def groups_for(self, profile: UserAuthorizationProfile) -> list[Group]:
        return [g for g in self.groups.values() if g.id in profile.group_ids]

    def grants_for(self, user_id: str) -> list[TemporaryAccessGrant]:
        return [g for g in self.grants.values() if g.user_id == user_id]
