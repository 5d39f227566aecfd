"""Persistence interface consumed by the engine.

The engine loads everything at session start and writes through one call
per mutation.  Implementations only need record-level get/put semantics;
``save_approval`` is the one operation that must persist two records
atomically.
"""

from __future__ import annotations

from typing import Protocol

from geoauthz.models import (
    ActivityEntry,
    Group,
    RegionRequest,
    TemporaryAccessGrant,
    UserAuthorizationProfile,
)


class AuthzStore(Protocol):
    async def load_user_profile(self, user_id: str) -> UserAuthorizationProfile | None: ...

    async def load_profiles(self) -> list[UserAuthorizationProfile]: ...

    async def load_groups(self) -> list[Group]: ...

    async def load_grants(self) -> list[TemporaryAccessGrant]: ...

    async def load_requests(self) -> list[RegionRequest]: ...

    async def load_activity(self, limit: int = 100) -> list[ActivityEntry]: ...

    async def save_profile(self, profile: UserAuthorizationProfile) -> None: ...

    async def save_group(self, group: Group) -> None: ...

    async def delete_group(self, group_id: str) -> None: ...

    async def save_grant(self, grant: TemporaryAccessGrant) -> None: ...

    async def save_request(self, request: RegionRequest) -> None: ...

    async def save_approval(
        self, request: RegionRequest, profile: UserAuthorizationProfile
    ) -> None: ...

    async def append_activity(self, entry: ActivityEntry) -> None: ...
