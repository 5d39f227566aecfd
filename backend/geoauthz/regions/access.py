"""Region access checks.

Effective regions = assigned ∪ states of assigned zones ∪ regions of active
member groups ∪ regions of active temporary grants.  Admin short-circuits to
every region.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from geoauthz.models.grant import TemporaryAccessGrant
from geoauthz.models.group import Group
from geoauthz.models.user import UserAuthorizationProfile
from geoauthz.regions.catalog import INDIA_REGIONS, canonical_region, regions_in_zone
from geoauthz.utils.clock import ensure_aware, utcnow


def zone_regions(profile: UserAuthorizationProfile) -> frozenset[str]:
    return frozenset(r for zone in profile.assigned_zones for r in regions_in_zone(zone))


def group_regions(profile: UserAuthorizationProfile, groups: Iterable[Group]) -> frozenset[str]:
    regions: set[str] = set()
    for group in groups:
        if group.is_active and group.id in profile.group_ids:
            regions |= group.assigned_regions
    return frozenset(regions)


def grant_regions(
    profile: UserAuthorizationProfile,
    grants: Iterable[TemporaryAccessGrant],
    now: datetime,
) -> frozenset[str]:
    return frozenset(
        g.region for g in grants if g.user_id == profile.user_id and g.is_active(now)
    )


def can_access_region(
    profile: UserAuthorizationProfile,
    grants: Iterable[TemporaryAccessGrant],
    region: str,
    now: datetime | None = None,
    groups: Iterable[Group] = (),
) -> bool:
    if profile.is_admin:
        return True
    now = ensure_aware(now) if now else utcnow()
    region = canonical_region(region)
    if region in profile.assigned_regions:
        return True
    if region in zone_regions(profile):
        return True
    if region in group_regions(profile, groups):
        return True
    return region in grant_regions(profile, grants, now)


def effective_regions(
    profile: UserAuthorizationProfile,
    grants: Iterable[TemporaryAccessGrant],
    groups: Iterable[Group] = (),
    now: datetime | None = None,
) -> frozenset[str]:
    """Every region the user can act in right now."""
    if profile.is_admin:
        return frozenset(INDIA_REGIONS) | profile.assigned_regions
    now = ensure_aware(now) if now else utcnow()
    return (
        profile.assigned_regions
        | zone_regions(profile)
        | group_regions(profile, groups)
        | grant_regions(profile, grants, now)
    )
