"""Redis-backed store.

Layout (``prefix`` defaults to ``settings.redis_key_prefix``):

    {prefix}:profiles   hash  user_id    -> profile JSON
    {prefix}:groups     hash  group_id   -> group JSON
    {prefix}:grants     hash  grant_id   -> grant JSON
    {prefix}:requests   hash  request_id -> request JSON
    {prefix}:activity   list  newest first, capped at ACTIVITY_CAP

Approval writes the request and the profile inside one MULTI/EXEC so a
reader never sees an approved request without the region assignment.
"""

from __future__ import annotations

import logging
from typing import TypeVar

import redis.asyncio as redis
from pydantic import BaseModel

from geoauthz.config import settings
from geoauthz.models import (
    ActivityEntry,
    Group,
    RegionRequest,
    TemporaryAccessGrant,
    UserAuthorizationProfile,
)
from geoauthz.utils.redis import get_redis

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ACTIVITY_CAP = 5000


class RedisStore:
    def __init__(self, client: redis.Redis | None = None, prefix: str | None = None):
        self._client = client
        self.prefix = prefix or settings.redis_key_prefix

    async def _redis(self) -> redis.Redis:
        if self._client is None:
            self._client = await get_redis()
        return self._client

    def key(self, name: str) -> str:
        return f"{self.prefix}:{name}"

    async def _load_all(self, name: str, model: type[M]) -> list[M]:
        client = await self._redis()
        raw = await client.hgetall(self.key(name))
        items = []
        for record_id, payload in raw.items():
            try:
                items.append(model.model_validate_json(payload))
            except ValueError as e:
                logger.warning(f"Skipping unreadable {name} record {record_id}: {e}")
        return items

    async def _save(self, name: str, record_id: str, record: BaseModel) -> None:
        client = await self._redis()
        await client.hset(self.key(name), record_id, record.model_dump_json())

    # ── Loads ────────────────────────────────────────────────

    async def load_user_profile(self, user_id: str) -> UserAuthorizationProfile | None:
        client = await self._redis()
        payload = await client.hget(self.key("profiles"), user_id)
        if payload is None:
            return None
        return UserAuthorizationProfile.model_validate_json(payload)

    async def load_profiles(self) -> list[UserAuthorizationProfile]:
        return await self._load_all("profiles", UserAuthorizationProfile)

    async def load_groups(self) -> list[Group]:
        return await self._load_all("groups", Group)

    async def load_grants(self) -> list[TemporaryAccessGrant]:
        return await self._load_all("grants", TemporaryAccessGrant)

    async def load_requests(self) -> list[RegionRequest]:
        return await self._load_all("requests", RegionRequest)

    async def load_activity(self, limit: int = 100) -> list[ActivityEntry]:
        client = await self._redis()
        rows = await client.lrange(self.key("activity"), 0, limit - 1)
        return [ActivityEntry.model_validate_json(row) for row in rows]

    # ── Writes ───────────────────────────────────────────────

    async def save_profile(self, profile: UserAuthorizationProfile) -> None:
        await self._save("profiles", profile.user_id, profile)

    async def save_group(self, group: Group) -> None:
        await self._save("groups", group.id, group)

    async def delete_group(self, group_id: str) -> None:
        client = await self._redis()
        await client.hdel(self.key("groups"), group_id)

    async def save_grant(self, grant: TemporaryAccessGrant) -> None:
        await self._save("grants", grant.id, grant)

    async def save_request(self, request: RegionRequest) -> None:
        await self._save("requests", request.id, request)

    async def save_approval(
        self, request: RegionRequest, profile: UserAuthorizationProfile
    ) -> None:
        client = await self._redis()
        async with client.pipeline(transaction=True) as pipe:
            pipe.hset(self.key("requests"), request.id, request.model_dump_json())
            pipe.hset(self.key("profiles"), profile.user_id, profile.model_dump_json())
            await pipe.execute()

    async def append_activity(self, entry: ActivityEntry) -> None:
        client = await self._redis()
        async with client.pipeline(transaction=True) as pipe:
            pipe.lpush(self.key("activity"), entry.model_dump_json())
            pipe.ltrim(self.key("activity"), 0, ACTIVITY_CAP - 1)
            await pipe.execute()

    async def clear(self) -> None:
        """Delete every key under this store's prefix."""
        client = await self._redis()
        keys = [key async for key in client.scan_iter(match=f"{self.prefix}:*")]
        if keys:
            await client.delete(*keys)
            logger.info(f"Cleared {len(keys)} keys under {self.prefix}")
