"""Tests for the temporary access grant ledger."""

import asyncio
from datetime import timedelta

import pytest
from pydantic import ValidationError

from conftest import T0, fail_writes, slow_writes
from geoauthz.errors import (
    DuplicateGrantError,
    InvalidRangeError,
    InvalidStateError,
    InvalidValueError,
    NotFoundError,
)
from geoauthz.models import AccessLevel, GrantStatus, TemporaryAccessGrant


@pytest.mark.unit
class TestGrantModel:
    def test_expiry_must_follow_grant_time(self):
        with pytest.raises(ValidationError):
            TemporaryAccessGrant(
                user_id="u1", region="Goa", granted_by="admin", granted_at=T0, expires_at=T0,
            )

    def test_naive_datetimes_are_utc(self):
        grant = TemporaryAccessGrant(
            user_id="u1",
            region="goa",
            granted_by="admin",
            granted_at=T0.replace(tzinfo=None),
            expires_at=(T0 + timedelta(hours=1)).replace(tzinfo=None),
        )
        assert grant.granted_at == T0
        assert grant.region == "Goa"

    def test_status_and_time_remaining(self):
        grant = TemporaryAccessGrant(
            user_id="u1", region="Goa", granted_by="admin",
            granted_at=T0, expires_at=T0 + timedelta(days=1, hours=2, minutes=5),
        )
        remaining = grant.time_remaining(T0)
        assert remaining.display == "1d 2h 5m"
        assert (remaining.days, remaining.hours, remaining.minutes) == (1, 2, 5)
        assert grant.time_remaining(grant.expires_at - timedelta(seconds=250)).display == "4m 10s"
        assert grant.time_remaining(grant.expires_at - timedelta(hours=3, seconds=7)).display == "3h 0m 7s"
        assert grant.time_remaining(grant.expires_at).display == "Expired"
        assert grant.status(T0) == GrantStatus.ACTIVE
        assert grant.status(grant.expires_at) == GrantStatus.EXPIRED


@pytest.mark.unit
@pytest.mark.asyncio
class TestTemporaryAccessLedger:
    """grant / revoke / extend / reads."""

    async def test_grant_creates_active_grant(self, engine, store, clock):
        outcome = await engine.grants.grant("u1", "Mumbai", "admin", clock() + timedelta(hours=1))
        assert outcome.ok
        grant = outcome.value
        assert grant.granted_at == clock()
        assert store.grants[grant.id] == grant
        assert engine.grants.active_grants("u1") == [grant]
        assert store.activity[-1].action == "granted"

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(seconds=-1), timedelta(days=-3)])
    async def test_grant_in_past_is_invalid_range(self, engine, store, clock, offset):
        outcome = await engine.grants.grant("u1", "Mumbai", "admin", clock() + offset)
        assert not outcome.ok
        assert isinstance(outcome.error, InvalidRangeError)
        assert store.grants == {}
        with pytest.raises(InvalidRangeError):
            outcome.unwrap()

    async def test_active_grants_is_lazy(self, engine, store, clock):
        grant = (await engine.grants.grant("u1", "Mumbai", "admin", clock() + timedelta(hours=1))).value
        clock.advance(hours=1)
        assert engine.grants.active_grants("u1") == []
        # Nothing was rewritten: the stored record is unchanged
        assert store.grants[grant.id] == grant
        assert engine.grants.active_grants("u1", as_of=T0) == [grant]

    async def test_revoke_is_immediate_and_idempotent(self, engine, store, clock):
        grant = (await engine.grants.grant("u1", "Mumbai", "admin", clock() + timedelta(hours=1))).value
        clock.advance(minutes=10)

        first = await engine.grants.revoke(grant.id, "mgr", reason="job finished")
        assert first.ok
        assert first.value.revoked_at == clock()
        assert first.value.revoked_by == "mgr"
        assert first.value.revoked_reason == "job finished"
        assert engine.grants.active_grants("u1") == []

        clock.advance(minutes=1)
        second = await engine.grants.revoke(grant.id, "admin")
        assert second.ok
        assert second.value == first.value
        assert store.grants[grant.id].revoked_by == "mgr"

    async def test_revoke_expired_is_noop(self, engine, store, clock):
        grant = (await engine.grants.grant("u1", "Mumbai", "admin", clock() + timedelta(hours=1))).value
        clock.advance(hours=2)
        outcome = await engine.grants.revoke(grant.id, "admin")
        assert outcome.ok
        assert outcome.value.revoked_at is None

    async def test_revoke_unknown(self, engine):
        outcome = await engine.grants.revoke("nope", "admin")
        assert isinstance(outcome.error, NotFoundError)

    async def test_extend(self, engine, clock):
        grant = (await engine.grants.grant("u1", "Goa", "admin", clock() + timedelta(hours=1))).value
        outcome = await engine.grants.extend(grant.id, clock() + timedelta(days=2), "admin")
        assert outcome.ok
        assert outcome.value.expires_at == clock() + timedelta(days=2)
        assert outcome.value.id == grant.id

    async def test_extend_rejects_inactive_or_past(self, engine, clock):
        grant = (await engine.grants.grant("u1", "Goa", "admin", clock() + timedelta(hours=1))).value
        past = await engine.grants.extend(grant.id, clock() - timedelta(minutes=1), "admin")
        assert isinstance(past.error, InvalidRangeError)

        await engine.grants.revoke(grant.id, "admin")
        revoked = await engine.grants.extend(grant.id, clock() + timedelta(days=1), "admin")
        assert isinstance(revoked.error, InvalidStateError)

        missing = await engine.grants.extend("nope", clock() + timedelta(days=1), "admin")
        assert isinstance(missing.error, NotFoundError)

    async def test_list_filters_and_stats(self, engine, clock):
        a = (await engine.grants.grant("u1", "Mumbai", "admin", clock() + timedelta(hours=1))).value
        clock.advance(minutes=1)
        b = (await engine.grants.grant("u2", "Kerala", "mgr", clock() + timedelta(days=3))).value
        clock.advance(minutes=1)
        c = (await engine.grants.grant("u1", "Kerala", "admin", clock() + timedelta(hours=5))).value
        await engine.grants.revoke(c.id, "admin")

        assert [g.id for g in engine.grants.list_grants()] == [c.id, b.id, a.id]
        assert [g.id for g in engine.grants.list_grants(user_id="u1")] == [c.id, a.id]
        assert [g.id for g in engine.grants.list_grants(region="kerala")] == [c.id, b.id]
        assert [g.id for g in engine.grants.list_grants(granted_by="mgr")] == [b.id]
        assert [g.id for g in engine.grants.list_grants(status="revoked")] == [c.id]

        clock.advance(hours=2)
        assert [g.id for g in engine.grants.list_grants(status=GrantStatus.EXPIRED)] == [a.id]

        stats = engine.grants.stats()
        assert (stats.total, stats.active, stats.expired, stats.revoked) == (3, 1, 1, 1)
        assert stats.by_region == {"Kerala": 1}
        assert stats.by_user == {"u2": 1}

    async def test_expiring_grants(self, engine, clock):
        soon = (await engine.grants.grant("u1", "Goa", "admin", clock() + timedelta(hours=2))).value
        sooner = (await engine.grants.grant("u2", "Goa", "admin", clock() + timedelta(hours=1))).value
        await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(days=5))

        expiring = engine.grants.expiring_grants(timedelta(hours=24))
        assert [g.id for g in expiring] == [sooner.id, soon.id]


@pytest.mark.unit
@pytest.mark.asyncio
class TestGrantValidation:
    """Who and where a grant may name."""

    async def test_unknown_user(self, engine, store, clock):
        outcome = await engine.grants.grant("ghost", "Goa", "admin", clock() + timedelta(hours=1))
        assert isinstance(outcome.error, NotFoundError)
        assert outcome.error.details == {"resource": "User profile", "id": "ghost"}
        assert store.grants == {}

    @pytest.mark.parametrize("region", ["Atlantis", "Not A Region", ""])
    async def test_unknown_region(self, engine, store, clock, region):
        outcome = await engine.grants.grant("u1", region, "admin", clock() + timedelta(hours=1))
        assert isinstance(outcome.error, NotFoundError)
        assert store.grants == {}

    async def test_region_from_loaded_boundaries_is_known(self, engine, clock):
        # Mumbai is not a catalog region, but the boundary index names it
        outcome = await engine.grants.grant("u1", "mumbai", "admin", clock() + timedelta(hours=1))
        assert outcome.ok
        assert outcome.value.region == "Mumbai"

    async def test_region_already_assigned(self, engine, store, clock):
        outcome = await engine.grants.grant("u1", "NCT of Delhi", "admin", clock() + timedelta(hours=1))
        assert isinstance(outcome.error, InvalidStateError)
        assert "permanent access" in outcome.error.message
        assert store.grants == {}

    async def test_duplicate_active_grant(self, engine, store, clock):
        first = (await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))).value
        second = await engine.grants.grant("u3", "goa", "mgr", clock() + timedelta(days=1))
        assert isinstance(second.error, DuplicateGrantError)
        assert second.error.details == {"user_id": "u3", "region": "Goa"}
        assert list(store.grants) == [first.id]

    async def test_regrant_after_revoke_or_expiry(self, engine, clock):
        first = (await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))).value
        await engine.grants.revoke(first.id, "admin")
        second = await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))
        assert second.ok

        clock.advance(hours=2)
        third = await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))
        assert third.ok
        assert [g.id for g in engine.grants.active_grants("u3")] == [third.value.id]

    async def test_concurrent_duplicates_leave_one_grant(self, engine, store, clock, monkeypatch):
        slow_writes(monkeypatch, store, "save_grant")
        expires = clock() + timedelta(hours=1)
        outcomes = await asyncio.gather(
            engine.grants.grant("u3", "Goa", "admin", expires),
            engine.grants.grant("u3", "Goa", "mgr", expires),
        )
        assert sorted(o.ok for o in outcomes) == [False, True]
        assert len(store.grants) == 1
        assert len(engine.grants.active_grants("u3")) == 1

    async def test_access_level(self, engine, clock):
        default = (await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))).value
        assert default.access_level == AccessLevel.READ

        write = await engine.grants.grant(
            "u3", "Kerala", "admin", clock() + timedelta(hours=1), access_level="write"
        )
        assert write.value.access_level == AccessLevel.WRITE

        bad = await engine.grants.grant(
            "u3", "Punjab", "admin", clock() + timedelta(hours=1), access_level="root"
        )
        assert isinstance(bad.error, InvalidValueError)


@pytest.mark.unit
@pytest.mark.asyncio
class TestLedgerStoreFailures:
    """A failed store write leaves the in-memory ledger unchanged."""

    async def test_grant(self, engine, store, clock, monkeypatch):
        fail_writes(monkeypatch, store, "save_grant")
        with pytest.raises(RuntimeError):
            await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))
        assert engine.state.grants == {}
        assert engine.grants.active_grants("u3") == []
        assert store.activity == []

    async def test_revoke(self, engine, store, clock, monkeypatch):
        grant = (await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))).value
        fail_writes(monkeypatch, store, "save_grant")
        with pytest.raises(RuntimeError):
            await engine.grants.revoke(grant.id, "admin")
        assert engine.grants.get(grant.id) == grant
        assert engine.grants.active_grants("u3") == [grant]

    async def test_extend(self, engine, store, clock, monkeypatch):
        grant = (await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))).value
        fail_writes(monkeypatch, store, "save_grant")
        with pytest.raises(RuntimeError):
            await engine.grants.extend(grant.id, clock() + timedelta(days=3), "admin")
        assert engine.grants.get(grant.id).expires_at == grant.expires_at

    async def test_lock_released_after_failure(self, engine, store, clock, monkeypatch):
        fail_writes(monkeypatch, store, "save_grant")
        with pytest.raises(RuntimeError):
            await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))
        monkeypatch.undo()
        outcome = await engine.grants.grant("u3", "Goa", "admin", clock() + timedelta(hours=1))
        assert outcome.ok
        assert not engine.state.write_lock.locked()
