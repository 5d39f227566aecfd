"""Tests for the group registry and profile service."""

from datetime import timedelta

import pytest

from conftest import POINT_IN_KERALA, fail_writes
from geoauthz.auth.decision import Target
from geoauthz.auth.permissions import ALL
from geoauthz.errors import (
    InvalidPermissionError,
    InvalidRangeError,
    InvalidValueError,
    NotFoundError,
)
from geoauthz.models import Role
from geoauthz.regions.access import can_access_region
from geoauthz.regions.catalog import canonical_zone, regions_in_zone


@pytest.mark.unit
@pytest.mark.asyncio
class TestGroupRegistry:
    async def test_create_with_members(self, engine, store):
        outcome = await engine.groups.create(
            "Survey South",
            "admin",
            permissions=["gis.elevation.use", "gis.elevation.save"],
            assigned_regions=["kerala", "TN"],
            members=["u3"],
        )
        assert outcome.ok
        group = outcome.value
        assert group.assigned_regions == {"Kerala", "Tamil Nadu"}
        assert group.members == {"u3"}
        assert group.id in engine.profiles.get("u3").group_ids
        assert store.groups[group.id] == group

        eff = engine.profiles.effective_permissions("u3")
        assert "gis.elevation.save" in eff.from_groups
        assert "Kerala" in engine.profiles.effective_regions("u3")

    async def test_create_rejects_unknown_permissions(self, engine):
        outcome = await engine.groups.create("Bad", "admin", permissions=["gis.teleport.use", "gis.*"])
        assert isinstance(outcome.error, InvalidPermissionError)
        assert outcome.error.permission_ids == ["gis.teleport.use"]

    async def test_remove_member_drops_contribution_immediately(self, engine):
        assert "gis.infrastructure.delete.any" in engine.profiles.effective_permissions("u2").all

        outcome = await engine.groups.remove_member("field-north", "u2", "admin")
        assert outcome.ok
        assert "u2" not in outcome.value.members
        assert "field-north" not in engine.profiles.get("u2").group_ids
        assert "gis.infrastructure.delete.any" not in engine.profiles.effective_permissions("u2").all
        assert "Punjab" not in engine.profiles.effective_regions("u2")

    async def test_deactivate_group(self, engine):
        outcome = await engine.groups.update("field-north", "admin", is_active=False)
        assert outcome.ok
        assert "gis.infrastructure.use" not in engine.profiles.effective_permissions("u2").all
        assert [g.id for g in engine.groups.list_groups(include_inactive=False)] == []

    async def test_update_fields(self, engine, clock):
        clock.advance(hours=1)
        outcome = await engine.groups.update(
            "field-north", "admin", name="North Crew", assigned_regions=["HR"], members=["ignored"]
        )
        group = outcome.value
        assert group.name == "North Crew"
        assert group.assigned_regions == {"Haryana"}
        assert group.members == {"u2"}
        assert group.updated_at == clock()

        bad = await engine.groups.update("field-north", "admin", permissions=["nope"])
        assert isinstance(bad.error, InvalidPermissionError)

    async def test_delete_group(self, engine, store):
        outcome = await engine.groups.delete("field-north", "admin")
        assert outcome.ok
        assert engine.groups.get("field-north") is None
        assert "field-north" not in store.groups
        assert "field-north" not in engine.profiles.get("u2").group_ids

    async def test_unknown_group(self, engine):
        assert isinstance((await engine.groups.delete("nope", "admin")).error, NotFoundError)
        assert isinstance((await engine.groups.update("nope", "admin", name="x")).error, NotFoundError)
        assert isinstance((await engine.groups.add_member("nope", "u1", "admin")).error, NotFoundError)
        assert isinstance((await engine.groups.remove_member("nope", "u1", "admin")).error, NotFoundError)

    async def test_groups_of(self, engine):
        assert [g.id for g in engine.groups.groups_of("u2")] == ["field-north"]
        assert engine.groups.groups_of("u1") == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestProfileService:
    async def test_direct_permission_with_expiry(self, engine, clock):
        outcome = await engine.profiles.grant_permission(
            "u3", "data.export", "admin", expires_at=clock() + timedelta(hours=1)
        )
        assert outcome.ok
        assert "data.export" in engine.profiles.effective_permissions("u3").direct
        clock.advance(hours=1)
        assert "data.export" not in engine.profiles.effective_permissions("u3").all

    async def test_direct_permission_validation(self, engine, clock):
        past = await engine.profiles.grant_permission("u3", "data.export", "admin", expires_at=clock())
        assert isinstance(past.error, InvalidRangeError)
        unknown = await engine.profiles.grant_permission("u3", "data.teleport", "admin")
        assert isinstance(unknown.error, InvalidPermissionError)

    async def test_revoke_direct_permission(self, engine):
        await engine.profiles.grant_permission("u3", "users.view", "admin")
        await engine.profiles.revoke_permission("u3", "users.view", "admin")
        assert "users.view" not in engine.profiles.effective_permissions("u3").all

    async def test_set_role(self, engine, store):
        outcome = await engine.profiles.set_role("u3", "admin", "admin")
        assert outcome.value.role == Role.ADMIN
        assert engine.profiles.effective_permissions("u3").all is ALL
        assert store.profiles["u3"].role == Role.ADMIN
        assert isinstance((await engine.profiles.set_role("ghost", "User", "admin")).error, NotFoundError)

    async def test_assign_and_unassign_regions(self, engine):
        await engine.profiles.assign_regions("u3", ["goa", "KA"], "admin")
        assert engine.profiles.get("u3").assigned_regions == {"Goa", "Karnataka"}
        await engine.profiles.unassign_region("u3", "goa", "admin")
        assert engine.profiles.get("u3").assigned_regions == {"Karnataka"}

    async def test_set_role_rejects_unknown_role(self, engine, store):
        outcome = await engine.profiles.set_role("u3", "Overlord", "admin")
        assert isinstance(outcome.error, InvalidValueError)
        assert store.profiles["u3"].role == Role.USER


@pytest.mark.unit
@pytest.mark.parametrize(
    "name, zone",
    [
        ("north", "North Zone"),
        ("NORTH ZONE", "North Zone"),
        ("  south  zone ", "South Zone"),
        ("Pacific", "Pacific"),
    ],
)
def test_canonical_zone(name, zone):
    assert canonical_zone(name) == zone


@pytest.mark.unit
@pytest.mark.asyncio
class TestZoneAssignment:
    async def test_assign_zones_opens_every_state(self, engine, store, clock):
        outcome = await engine.profiles.assign_zones("u3", ["south"], "admin")
        assert outcome.ok
        assert outcome.value.assigned_zones == {"South Zone"}
        assert store.profiles["u3"].assigned_zones == {"South Zone"}

        profile = engine.profiles.get("u3")
        assert can_access_region(profile, [], "Kerala", now=clock())
        assert can_access_region(profile, [], "Puducherry", now=clock())
        assert not can_access_region(profile, [], "Punjab", now=clock())
        assert set(regions_in_zone("South Zone")) <= engine.profiles.effective_regions("u3")
        assert store.activity[-1].action == "zones_assigned"

    async def test_assign_zones_replaces(self, engine):
        await engine.profiles.assign_zones("u3", ["North Zone", "East Zone"], "admin")
        await engine.profiles.assign_zones("u3", ["Central"], "admin")
        assert engine.profiles.get("u3").assigned_zones == {"Central Zone"}
        assert "Punjab" not in engine.profiles.effective_regions("u3")
        assert "Uttar Pradesh" in engine.profiles.effective_regions("u3")

    async def test_unknown_zone(self, engine, store):
        outcome = await engine.profiles.assign_zones("u3", ["South Zone", "Pacific Zone"], "admin")
        assert isinstance(outcome.error, NotFoundError)
        assert outcome.error.details == {"resource": "Zone", "id": "Pacific Zone"}
        assert engine.profiles.get("u3").assigned_zones == frozenset()

    async def test_remove_zones(self, engine):
        missing = await engine.profiles.remove_zones("u3", "admin")
        assert isinstance(missing.error, NotFoundError)

        await engine.profiles.assign_zones("u3", ["West"], "admin")
        outcome = await engine.profiles.remove_zones("u3", "admin")
        assert outcome.value.assigned_zones == frozenset()
        assert "Goa" not in engine.profiles.effective_regions("u3")

    async def test_zone_region_authorizes_coordinate(self, engine):
        target = Target(coordinate=POINT_IN_KERALA)
        assert not (await engine.authorize("u3", "gis.polygon.use", target)).allowed
        await engine.profiles.assign_zones("u3", ["South Zone"], "admin")
        decision = await engine.authorize("u3", "gis.polygon.use", target)
        assert decision.allowed
        assert decision.region == "Kerala"


@pytest.mark.unit
@pytest.mark.asyncio
class TestGroupAndProfileStoreFailures:
    """A failed store write leaves groups and profiles unchanged in memory."""

    async def test_create_group(self, engine, store, monkeypatch):
        fail_writes(monkeypatch, store, "save_group")
        with pytest.raises(RuntimeError):
            await engine.groups.create("Survey South", "admin")
        assert [g.id for g in engine.groups.list_groups()] == ["field-north"]

    async def test_update_group(self, engine, store, monkeypatch):
        before = engine.groups.get("field-north")
        fail_writes(monkeypatch, store, "save_group")
        with pytest.raises(RuntimeError):
            await engine.groups.update("field-north", "admin", is_active=False)
        assert engine.groups.get("field-north") == before
        assert "gis.infrastructure.use" in engine.profiles.effective_permissions("u2").all

    async def test_delete_group(self, engine, store, monkeypatch):
        fail_writes(monkeypatch, store, "delete_group")
        with pytest.raises(RuntimeError):
            await engine.groups.delete("field-north", "admin")
        assert engine.groups.get("field-north") is not None
        assert "field-north" in engine.profiles.get("u2").group_ids

    async def test_add_member_profile_write_fails(self, engine, store, monkeypatch):
        fail_writes(monkeypatch, store, "save_profile")
        with pytest.raises(RuntimeError):
            await engine.groups.add_member("field-north", "u3", "admin")
        # The group write landed; the profile did not, in memory or in the store
        assert "u3" in store.groups["field-north"].members
        assert engine.groups.get("field-north") == store.groups["field-north"]
        assert engine.profiles.get("u3") == store.profiles["u3"]
        assert "field-north" not in engine.profiles.get("u3").group_ids

    async def test_remove_member(self, engine, store, monkeypatch):
        fail_writes(monkeypatch, store, "save_group")
        with pytest.raises(RuntimeError):
            await engine.groups.remove_member("field-north", "u2", "admin")
        assert "u2" in engine.groups.get("field-north").members
        assert "field-north" in engine.profiles.get("u2").group_ids

    @pytest.mark.parametrize(
        "call",
        [
            lambda p: p.set_role("u3", "Manager", "admin"),
            lambda p: p.assign_regions("u3", ["Goa"], "admin"),
            lambda p: p.unassign_region("u1", "Delhi", "admin"),
            lambda p: p.assign_zones("u3", ["South"], "admin"),
            lambda p: p.grant_permission("u3", "data.export", "admin"),
            lambda p: p.revoke_permission("u3", "search.use", "admin"),
        ],
        ids=[
            "set_role",
            "assign_regions",
            "unassign_region",
            "assign_zones",
            "grant_permission",
            "revoke_permission",
        ],
    )
    async def test_profile_mutations(self, engine, store, monkeypatch, call):
        before = dict(engine.state.profiles)
        fail_writes(monkeypatch, store, "save_profile")
        with pytest.raises(RuntimeError):
            await call(engine.profiles)
        assert engine.state.profiles == before
