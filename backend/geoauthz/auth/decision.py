"""The authorization decision function.

Every tool and page calls ``authorize`` before performing an action:

  1. Permission: the action id must be in the user's effective set.
  2. Scope: for own/team/any-scoped actions with a known resource owner,
     the owner must be the user (own), share an active group or an
     assigned region with the user (team), or anyone (any).
  3. Region: if a coordinate is given it must resolve to a region the
     user can access.  An unresolved lookup allows the action and logs
     the fallback (fail-open), unless ``region_fail_open`` is disabled.
  4. Allow.

Admin skips steps 2 and 3.  Steps 1, 2 and 4 are synchronous
(``authorize_static``, which refuses coordinate targets); only step 3
awaits.  ``authorize`` never raises:
every input yields a ``Decision`` whose ``reason`` is shown to the user
verbatim on denial.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from geoauthz.auth.permissions import Scope, parse_scope
from geoauthz.auth.resolution import effective_permissions, has_permission
from geoauthz.config import settings
from geoauthz.models.grant import TemporaryAccessGrant
from geoauthz.models.group import Group
from geoauthz.models.user import UserAuthorizationProfile
from geoauthz.regions.access import can_access_region
from geoauthz.regions.catalog import canonical_region
from geoauthz.regions.directory import UNRESOLVED, Coordinate, RegionDirectory
from geoauthz.utils.clock import ensure_aware, utcnow

logger = logging.getLogger("geoauthz.decision")

SCOPE_VIOLATION = "scope violation"
LOOKUP_UNAVAILABLE = "region lookup unavailable"


class Target(BaseModel):
    """What the action is aimed at.  Every field is optional."""
    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate | None = None
    resource_owner_id: str | None = None
    scope: Scope | None = None
    # Assigned regions of the resource owner, for team scope.  The engine
    # fills them from the owner's profile when left empty.
    owner_regions: frozenset[str] = frozenset()

    @field_validator("owner_regions", mode="before")
    @classmethod
    def _canonical_regions(cls, v):
        if v is None:
            return frozenset()
        return frozenset(canonical_region(r) for r in v)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None
    region: str | None = None

    @classmethod
    def allow(cls, region: str | None = None, reason: str | None = None) -> Decision:
        return cls(allowed=True, reason=reason, region=region)

    @classmethod
    def deny(cls, reason: str, region: str | None = None) -> Decision:
        return cls(allowed=False, reason=reason, region=region)


def missing_permission(action: str) -> str:
    return f"missing permission: {action}"


def region_denied(region: str) -> str:
    return f"region access denied: {region}"


def _shares_team(
    profile: UserAuthorizationProfile,
    groups: Iterable[Group],
    owner_id: str,
    owner_regions: frozenset[str],
) -> bool:
    for group in groups:
        if not group.is_active or owner_id not in group.members:
            continue
        if group.id in profile.group_ids or profile.user_id in group.members:
            return True
    return bool(owner_regions & profile.assigned_regions)


def check_scope(
    profile: UserAuthorizationProfile,
    groups: Iterable[Group],
    action: str,
    target: Target | None,
) -> bool:
    """True when the ownership scope of ``action`` is satisfied."""
    if target is None or target.resource_owner_id is None:
        return True
    scope = parse_scope(action) or target.scope
    if scope is None or scope == Scope.ANY:
        return True
    owner = target.resource_owner_id
    if owner == profile.user_id:
        return True
    if scope == Scope.OWN:
        return False
    return _shares_team(profile, groups, owner, target.owner_regions)


def _static_decision(
    profile: UserAuthorizationProfile,
    groups: list[Group],
    action: str,
    target: Target | None,
    now: datetime | None,
) -> Decision:
    if profile.is_admin:
        return Decision.allow()

    eff = effective_permissions(profile, groups, now=now)
    if not has_permission(eff.all, action):
        return Decision.deny(missing_permission(action))

    if not check_scope(profile, groups, action, target):
        return Decision.deny(SCOPE_VIOLATION)

    return Decision.allow()


def authorize_static(
    profile: UserAuthorizationProfile,
    groups: Iterable[Group],
    action: str,
    target: Target | None = None,
    *,
    now: datetime | None = None,
) -> Decision:
    """Steps 1, 2 and 4: everything that needs no region lookup.

    A target with a coordinate needs the region check, so it is rejected
    with ``ValueError``; use ``authorize`` for those.
    """
    if target is not None and target.coordinate is not None:
        raise ValueError("authorize_static cannot check a target with a coordinate; use authorize")
    return _static_decision(profile, list(groups), action, target, now)


async def authorize(
    profile: UserAuthorizationProfile,
    groups: Iterable[Group],
    grants: Iterable[TemporaryAccessGrant],
    action: str,
    target: Target | None = None,
    *,
    regions: RegionDirectory | None = None,
    now: datetime | None = None,
    fail_open: bool | None = None,
) -> Decision:
    now = ensure_aware(now) if now else utcnow()
    groups = list(groups)

    decision = _static_decision(profile, groups, action, target, now)
    if not decision.allowed or profile.is_admin:
        _log_denial(profile, action, decision)
        return decision

    if target is None or target.coordinate is None:
        return decision

    region = await regions.resolve_region(target.coordinate) if regions else UNRESOLVED

    if region is UNRESOLVED:
        open_ = settings.region_fail_open if fail_open is None else fail_open
        logger.warning(
            "Region lookup unresolved for %s at (%s, %s); %s",
            action,
            target.coordinate.lat,
            target.coordinate.lng,
            "allowing (fail-open)" if open_ else "denying (fail-closed)",
            extra={
                "event": "region_lookup_fallback",
                "user_id": profile.user_id,
                "action": action,
                "fail_open": open_,
            },
        )
        if open_:
            return Decision.allow()
        decision = Decision.deny(LOOKUP_UNAVAILABLE)
        _log_denial(profile, action, decision)
        return decision

    if not can_access_region(profile, list(grants), region, now=now, groups=groups):
        decision = Decision.deny(region_denied(region), region=region)
        _log_denial(profile, action, decision)
        return decision

    return Decision.allow(region=region)


def _log_denial(profile: UserAuthorizationProfile, action: str, decision: Decision) -> None:
    if decision.allowed:
        return
    logger.info(
        f"Denied {action} for {profile.user_id}: {decision.reason}",
        extra={"user_id": profile.user_id, "action": action, "reason": decision.reason},
    )
