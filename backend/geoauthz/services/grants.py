"""Temporary access grant ledger.

Grants are never swept: ``active_grants`` is a pure filter evaluated
against the clock at read time, and it is the only read path the region
check uses.  Revocation is terminal and idempotent; an expired or revoked
grant is never reactivated (create a new one instead).
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import BaseModel

from geoauthz.errors import (
    DuplicateGrantError,
    InvalidRangeError,
    InvalidStateError,
    InvalidValueError,
    NotFoundError,
    Outcome,
)
from geoauthz.models.grant import AccessLevel, GrantStatus, TemporaryAccessGrant
from geoauthz.regions.catalog import canonical_region, is_known_region
from geoauthz.services.state import AuthzState, serialized
from geoauthz.utils.activity import log_activity
from geoauthz.utils.clock import ensure_aware

logger = logging.getLogger(__name__)


class GrantStats(BaseModel):
    total: int
    active: int
    expired: int
    revoked: int
    by_region: dict[str, int]
    by_user: dict[str, int]


class TemporaryAccessLedger:
    def __init__(
        self,
        state: AuthzState,
        known_region: Callable[[str], bool] = is_known_region,
    ):
        self.state = state
        # Regions a grant may name: the catalog plus any loaded boundary names
        self.known_region = known_region

    # ── Reads ────────────────────────────────────────────────

    def get(self, grant_id: str) -> TemporaryAccessGrant | None:
        return self.state.grants.get(grant_id)

    def active_grants(self, user_id: str, as_of: datetime | None = None) -> list[TemporaryAccessGrant]:
        now = ensure_aware(as_of) if as_of else self.state.now()
        return [g for g in self.state.grants.values() if g.user_id == user_id and g.is_active(now)]

    def list_grants(
        self,
        *,
        user_id: str | None = None,
        region: str | None = None,
        granted_by: str | None = None,
        status: GrantStatus | str | None = None,
        as_of: datetime | None = None,
    ) -> list[TemporaryAccessGrant]:
        """Filtered view, newest first."""
        now = ensure_aware(as_of) if as_of else self.state.now()
        wanted_status = GrantStatus(status) if status else None
        wanted_region = canonical_region(region) if region else None

        result = []
        for grant in self.state.grants.values():
            if user_id and grant.user_id != user_id:
                continue
            if wanted_region and grant.region != wanted_region:
                continue
            if granted_by and grant.granted_by != granted_by:
                continue
            if wanted_status and grant.status(now) != wanted_status:
                continue
            result.append(grant)
        return sorted(result, key=lambda g: g.granted_at, reverse=True)

    def expiring_grants(
        self, within: timedelta, as_of: datetime | None = None
    ) -> list[TemporaryAccessGrant]:
        """Active grants that expire within ``within``, soonest first."""
        now = ensure_aware(as_of) if as_of else self.state.now()
        horizon = now + within
        expiring = [
            g for g in self.state.grants.values()
            if g.is_active(now) and g.expires_at <= horizon
        ]
        return sorted(expiring, key=lambda g: g.expires_at)

    def stats(self, as_of: datetime | None = None) -> GrantStats:
        now = ensure_aware(as_of) if as_of else self.state.now()
        statuses = Counter(g.status(now) for g in self.state.grants.values())
        active = [g for g in self.state.grants.values() if g.is_active(now)]
        return GrantStats(
            total=len(self.state.grants),
            active=statuses[GrantStatus.ACTIVE],
            expired=statuses[GrantStatus.EXPIRED],
            revoked=statuses[GrantStatus.REVOKED],
            by_region=dict(Counter(g.region for g in active)),
            by_user=dict(Counter(g.user_id for g in active)),
        )

    # ── Mutations ────────────────────────────────────────────

    @serialized
    async def grant(
        self,
        user_id: str,
        region: str,
        granted_by: str,
        expires_at: datetime,
        resource_type: str | None = None,
        resource_id: str | None = None,
        reason: str | None = None,
        access_level: AccessLevel | str = AccessLevel.READ,
    ) -> Outcome[TemporaryAccessGrant]:
        """Grant ``user_id`` time-boxed access to ``region``.

        Fails with ``NotFound`` for an unknown user or region,
        ``InvalidRange`` for an expiry that is not in the future,
        ``InvalidState`` when the region is already permanently assigned,
        and ``DuplicateGrant`` when an active grant for it already exists.
        """
        profile = self.state.profiles.get(user_id)
        if profile is None:
            return Outcome.failure(NotFoundError("User profile", user_id))
        region = canonical_region(region)
        if not self.known_region(region):
            return Outcome.failure(NotFoundError("Region", region))
        try:
            access_level = AccessLevel(access_level)
        except ValueError:
            return Outcome.failure(
                InvalidValueError("access_level", access_level, [a.value for a in AccessLevel])
            )

        now = self.state.now()
        expires_at = ensure_aware(expires_at)
        if expires_at <= now:
            return Outcome.failure(InvalidRangeError())
        if region in profile.assigned_regions:
            return Outcome.failure(
                InvalidStateError(
                    f"User {user_id} already has permanent access to {region}; "
                    "remove the assignment before granting temporary access"
                )
            )
        if any(g.region == region for g in self.active_grants(user_id, as_of=now)):
            return Outcome.failure(DuplicateGrantError(user_id, region))

        grant = TemporaryAccessGrant(
            user_id=user_id,
            region=region,
            resource_type=resource_type,
            resource_id=resource_id,
            access_level=access_level,
            granted_by=granted_by,
            granted_at=now,
            expires_at=expires_at,
            reason=reason,
        )
        await self.state.put_grant(grant)
        await log_activity(
            self.state.store, granted_by,
            action="granted", entity_type="temporary_access", entity_id=grant.id,
            summary=f"Granted {grant.region} to {user_id} until {expires_at.isoformat()}",
            details={"access_level": access_level.value},
        )
        logger.info(
            "Temporary access %s granted: %s -> %s until %s",
            grant.id, user_id, grant.region, expires_at.isoformat(),
        )
        return Outcome.success(grant)

    @serialized
    async def revoke(
        self, grant_id: str, revoked_by: str, reason: str | None = None
    ) -> Outcome[TemporaryAccessGrant]:
        grant = self.state.grants.get(grant_id)
        if grant is None:
            return Outcome.failure(NotFoundError("Temporary access grant", grant_id))

        now = self.state.now()
        if not grant.is_active(now):
            # Already revoked or expired: nothing to do
            return Outcome.success(grant)

        revoked = await self.state.put_grant(
            grant.model_copy(
                update={"revoked_at": now, "revoked_by": revoked_by, "revoked_reason": reason}
            )
        )
        await log_activity(
            self.state.store, revoked_by,
            action="revoked", entity_type="temporary_access", entity_id=grant_id,
            summary=f"Revoked {grant.region} from {grant.user_id}",
            details={"reason": reason} if reason else None,
        )
        logger.info("Temporary access %s revoked by %s", grant_id, revoked_by)
        return Outcome.success(revoked)

    @serialized
    async def extend(
        self, grant_id: str, new_expires_at: datetime, extended_by: str
    ) -> Outcome[TemporaryAccessGrant]:
        grant = self.state.grants.get(grant_id)
        if grant is None:
            return Outcome.failure(NotFoundError("Temporary access grant", grant_id))

        now = self.state.now()
        if not grant.is_active(now):
            return Outcome.failure(
                InvalidStateError(f"Cannot extend a {grant.status(now).value} grant")
            )
        new_expires_at = ensure_aware(new_expires_at)
        if new_expires_at <= now:
            return Outcome.failure(InvalidRangeError())

        extended = await self.state.put_grant(
            grant.model_copy(update={"expires_at": new_expires_at})
        )
        await log_activity(
            self.state.store, extended_by,
            action="extended", entity_type="temporary_access", entity_id=grant_id,
            summary=f"Extended {grant.region} for {grant.user_id} to {new_expires_at.isoformat()}",
            details={"previous_expires_at": grant.expires_at.isoformat()},
        )
        logger.info("Temporary access %s extended to %s", grant_id, new_expires_at.isoformat())
        return Outcome.success(extended)
