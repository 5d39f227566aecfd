"""Dict-backed store for tests and single-process deployments."""

from __future__ import annotations

from geoauthz.models import (
    ActivityEntry,
    Group,
    RegionRequest,
    TemporaryAccessGrant,
    UserAuthorizationProfile,
)


class InMemoryStore:
    def __init__(self) -> None:
        self.profiles: dict[str, UserAuthorizationProfile] = {}
        self.groups: dict[str, Group] = {}
        self.grants: dict[str, TemporaryAccessGrant] = {}
        self.requests: dict[str, RegionRequest] = {}
        self.activity: list[ActivityEntry] = []

    async def load_user_profile(self, user_id: str) -> UserAuthorizationProfile | None:
        return self.profiles.get(user_id)

    async def load_profiles(self) -> list[UserAuthorizationProfile]:
        return list(self.profiles.values())

    async def load_groups(self) -> list[Group]:
        return list(self.groups.values())

    async def load_grants(self) -> list[TemporaryAccessGrant]:
        return list(self.grants.values())

    async def load_requests(self) -> list[RegionRequest]:
        return list(self.requests.values())

    async def load_activity(self, limit: int = 100) -> list[ActivityEntry]:
        return list(reversed(self.activity[-limit:]))

    async def save_profile(self, profile: UserAuthorizationProfile) -> None:
        self.profiles[profile.user_id] = profile

    async def save_group(self, group: Group) -> None:
        self.groups[group.id] = group

    async def delete_group(self, group_id: str) -> None:
        self.groups.pop(group_id, None)

    async def save_grant(self, grant: TemporaryAccessGrant) -> None:
        self.grants[grant.id] = grant

    async def save_request(self, request: RegionRequest) -> None:
        self.requests[request.id] = request

    async def save_approval(
        self, request: RegionRequest, profile: UserAuthorizationProfile
    ) -> None:
        self.requests[request.id] = request
        self.profiles[profile.user_id] = profile

    async def append_activity(self, entry: ActivityEntry) -> None:
        self.activity.append(entry)
