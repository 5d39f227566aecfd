"""Effective permission resolution.

    all = role_defaults(role) ∪ permissions of active member groups ∪ unexpired direct grants

Union only.  No source can take away a permission another source gave;
removing a permission means removing it where it was granted.  Admin
resolves to the ``ALL`` sentinel.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from geoauthz.auth.permissions import ALL, PermissionSet, Wildcard, role_defaults
from geoauthz.models.group import Group
from geoauthz.models.user import UserAuthorizationProfile
from geoauthz.utils.clock import ensure_aware, utcnow


@dataclass(frozen=True)
class EffectivePermissions:
    direct: frozenset[str]
    from_groups: frozenset[str]
    all: PermissionSet

    @property
    def is_wildcard(self) -> bool:
        return self.all is ALL

    def sorted_ids(self) -> list[str]:
        """Stable list form; ``["*"]`` for the wildcard."""
        if isinstance(self.all, Wildcard):
            return [ALL.value]
        return sorted(self.all)


def effective_permissions(
    profile: UserAuthorizationProfile,
    groups: Iterable[Group],
    now: datetime | None = None,
) -> EffectivePermissions:
    now = ensure_aware(now) if now else utcnow()

    direct = frozenset(
        dp.permission_id for dp in profile.direct_permissions if dp.is_active(now)
    )
    from_groups: set[str] = set()
    for group in groups:
        if group.is_active and group.id in profile.group_ids:
            from_groups |= group.permissions

    if profile.is_admin:
        return EffectivePermissions(direct=direct, from_groups=frozenset(from_groups), all=ALL)

    baseline = role_defaults(profile.role)
    if isinstance(baseline, Wildcard):
        return EffectivePermissions(direct=direct, from_groups=frozenset(from_groups), all=ALL)

    return EffectivePermissions(
        direct=direct,
        from_groups=frozenset(from_groups),
        all=baseline | from_groups | direct,
    )


def _materialise(permissions):
    if isinstance(permissions, (Wildcard, set, frozenset)):
        return permissions
    return frozenset(permissions)


def has_permission(permissions: PermissionSet | Iterable[str], permission_id: str) -> bool:
    """Membership test.

    ``ALL`` (or a held ``"*"``) matches everything.  A held id ending in
    ``.*`` matches every id under that prefix: ``gis.*`` covers
    ``gis.polygon.use``.
    """
    if isinstance(permissions, Wildcard):
        return True
    held = _materialise(permissions)
    if permission_id in held or ALL.value in held:
        return True
    parts = permission_id.split(".")
    for i in range(len(parts) - 1, 0, -1):
        if ".".join(parts[:i]) + ".*" in held:
            return True
    return False


def has_any_permission(permissions: PermissionSet | Iterable[str], permission_ids: Iterable[str]) -> bool:
    permissions = _materialise(permissions)
    return any(has_permission(permissions, p) for p in permission_ids)


def has_all_permissions(permissions: PermissionSet | Iterable[str], permission_ids: Iterable[str]) -> bool:
    permissions = _materialise(permissions)
    return all(has_permission(permissions, p) for p in permission_ids)
