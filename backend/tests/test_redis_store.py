"""Integration tests for the Redis store.

Skipped automatically when no Redis server is reachable.
"""

from datetime import timedelta

import pytest

from conftest import T0
from geoauthz.engine import AuthorizationEngine
from geoauthz.models import (
    ActivityEntry,
    DirectPermission,
    Group,
    RegionRequest,
    RequestStatus,
    Role,
    TemporaryAccessGrant,
    UserAuthorizationProfile,
)
from geoauthz.store.redis_store import RedisStore

PREFIX = "geoauthz-test"


@pytest.fixture
def redis_store(redis_client) -> RedisStore:
    return RedisStore(client=redis_client, prefix=PREFIX)


@pytest.mark.integration
@pytest.mark.asyncio
class TestRedisStore:
    async def test_profile_roundtrip(self, redis_store):
        profile = UserAuthorizationProfile(
            user_id="tech-7",
            role=Role.TECHNICIAN,
            assigned_regions={"KA", "Goa"},
            assigned_zones={"east"},
            group_ids={"g1"},
            direct_permissions=[
                DirectPermission(permission_id="data.export", expires_at=T0 + timedelta(days=1))
            ],
        )
        await redis_store.save_profile(profile)

        loaded = await redis_store.load_user_profile("tech-7")
        assert loaded == profile
        assert loaded.assigned_regions == frozenset({"Karnataka", "Goa"})
        assert loaded.assigned_zones == frozenset({"East Zone"})
        assert await redis_store.load_user_profile("nobody") is None

    async def test_collections(self, redis_store):
        group = Group(id="g1", name="Crew", permissions={"gis.*"}, members={"tech-7"})
        grant = TemporaryAccessGrant(
            user_id="tech-7", region="Goa", granted_by="admin",
            granted_at=T0, expires_at=T0 + timedelta(hours=4), access_level="write",
        )
        request = RegionRequest(user_id="tech-7", region="Kerala")

        await redis_store.save_group(group)
        await redis_store.save_grant(grant)
        await redis_store.save_request(request)

        assert await redis_store.load_groups() == [group]
        assert await redis_store.load_grants() == [grant]
        assert await redis_store.load_requests() == [request]

        await redis_store.delete_group("g1")
        assert await redis_store.load_groups() == []

    async def test_unreadable_record_skipped(self, redis_store, redis_client):
        await redis_client.hset(f"{PREFIX}:groups", "broken", "{not json")
        await redis_store.save_group(Group(id="ok", name="Fine"))

        groups = await redis_store.load_groups()
        assert [g.id for g in groups] == ["ok"]

    async def test_approval_is_atomic_write(self, redis_store):
        request = RegionRequest(user_id="u", region="Goa", status=RequestStatus.APPROVED)
        profile = UserAuthorizationProfile(user_id="u", assigned_regions={"Goa"})

        await redis_store.save_approval(request, profile)

        assert (await redis_store.load_requests())[0].status == RequestStatus.APPROVED
        assert "Goa" in (await redis_store.load_user_profile("u")).assigned_regions

    async def test_activity_newest_first(self, redis_store):
        for n in range(3):
            await redis_store.append_activity(
                ActivityEntry(actor_id="admin", action=f"step-{n}", entity_type="test")
            )

        entries = await redis_store.load_activity(limit=2)
        assert [e.action for e in entries] == ["step-2", "step-1"]

    async def test_clear(self, redis_store, redis_client):
        await redis_store.save_group(Group(id="g", name="G"))
        await redis_store.clear()
        assert [k async for k in redis_client.scan_iter(match=f"{PREFIX}:*")] == []

    async def test_engine_reloads_from_redis(self, redis_store, clock):
        first = AuthorizationEngine(redis_store, clock=clock)
        await first.load()
        await first.profiles.upsert(UserAuthorizationProfile(user_id="u1", role=Role.USER))
        request = (await first.requests.create("u1", "Goa")).value
        await first.requests.approve(request.id, "admin")

        second = AuthorizationEngine(redis_store, clock=clock)
        await second.load()
        assert "Goa" in second.profiles.get("u1").assigned_regions
        assert second.requests.get(request.id).status == RequestStatus.APPROVED
