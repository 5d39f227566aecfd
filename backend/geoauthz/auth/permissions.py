"""Permission catalog and role defaults for GeoAuthZ RBAC.

Design:
  - The catalog is a static, immutable table shipped with the code.  It
    never changes at runtime.
  - Each role has a set of DEFAULT permissions (defined here, not in the
    store).  Admin is the exception: its defaults are the ``ALL`` sentinel
    rather than an enumerated set, so permissions added to the catalog
    later are covered without a migration.
  - Groups and per-user direct grants only ever ADD to the role baseline
    (see ``geoauthz.auth.resolution``).

Permission naming: ``<module path>.<action>[.<scope>]``
  Scope suffixes: own, team, any.  The data permissions use the legacy
  ``all`` suffix, which is read as ``any``.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict

from geoauthz.models.user import Role


class PermissionCategory(str, enum.Enum):
    GIS_TOOLS = "GIS Tools"
    DATA_MANAGEMENT = "Data Management"
    USER_MANAGEMENT = "User Management"
    GROUP_MANAGEMENT = "Group Management"
    SETTINGS = "Settings"
    SEARCH = "Search & Navigation"


class Scope(str, enum.Enum):
    OWN = "own"
    TEAM = "team"
    ANY = "any"


class Wildcard(enum.Enum):
    """Sentinel for "every permission", distinct from any enumerated set."""
    ALL = "*"

    def __repr__(self) -> str:
        return "ALL"


ALL = Wildcard.ALL

# Either an enumerated set of ids or the wildcard
PermissionSet = frozenset[str] | Wildcard

_SCOPE_SUFFIXES = {
    "own": Scope.OWN,
    "team": Scope.TEAM,
    "any": Scope.ANY,
    "all": Scope.ANY,
}


def parse_scope(permission_id: str) -> Scope | None:
    """Return the ownership scope encoded in the last segment of an id."""
    suffix = permission_id.rsplit(".", 1)[-1]
    return _SCOPE_SUFFIXES.get(suffix)


class Permission(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    category: PermissionCategory
    module: str
    action: str
    scope: Scope | None = None
    is_system: bool = True


def _perm(permission_id: str, name: str, category: PermissionCategory) -> Permission:
    parts = permission_id.split(".")
    # gis.<tool>.<action...>; everything else is <module>.<action...>
    if parts[0] == "gis":
        module, action = parts[1], ".".join(parts[2:])
    else:
        module, action = parts[0], ".".join(parts[1:])
    return Permission(
        id=permission_id,
        name=name,
        description=f"Allows user to {name[0].lower()}{name[1:]}",
        category=category,
        module=module,
        action=action,
        scope=parse_scope(permission_id),
    )


def _tool_permissions(tool: str, label: str, plural: str) -> list[Permission]:
    cat = PermissionCategory.GIS_TOOLS
    return [
        _perm(f"gis.{tool}.use", f"Use {label} Tool", cat),
        _perm(f"gis.{tool}.save", f"Save {plural}", cat),
        _perm(f"gis.{tool}.delete.own", f"Delete Own {plural}", cat),
        _perm(f"gis.{tool}.delete.any", f"Delete Any {plural}", cat),
    ]


GIS_TOOLS = ("distance", "polygon", "circle", "elevation", "infrastructure")


# ── Catalog ─────────────────────────────────────────────────

PERMISSION_CATALOG: tuple[Permission, ...] = (
    *_tool_permissions("distance", "Distance", "Distance Measurements"),
    *_tool_permissions("polygon", "Polygon", "Polygons"),
    *_tool_permissions("circle", "Circle", "Circles"),
    *_tool_permissions("elevation", "Elevation", "Elevation Profiles"),
    *_tool_permissions("infrastructure", "Infrastructure", "Infrastructure"),
    _perm("gis.infrastructure.import", "Import KML Files", PermissionCategory.GIS_TOOLS),

    _perm("data.view.own", "View Own Data", PermissionCategory.DATA_MANAGEMENT),
    _perm("data.view.all", "View All Data", PermissionCategory.DATA_MANAGEMENT),
    _perm("data.edit.own", "Edit Own Data", PermissionCategory.DATA_MANAGEMENT),
    _perm("data.edit.all", "Edit All Data", PermissionCategory.DATA_MANAGEMENT),
    _perm("data.delete.own", "Delete Own Data", PermissionCategory.DATA_MANAGEMENT),
    _perm("data.delete.all", "Delete All Data", PermissionCategory.DATA_MANAGEMENT),
    _perm("data.export", "Export Data", PermissionCategory.DATA_MANAGEMENT),

    _perm("users.view", "View Users", PermissionCategory.USER_MANAGEMENT),
    _perm("users.create", "Create Users", PermissionCategory.USER_MANAGEMENT),
    _perm("users.edit", "Edit Users", PermissionCategory.USER_MANAGEMENT),
    _perm("users.delete", "Delete Users", PermissionCategory.USER_MANAGEMENT),
    _perm("users.assign_regions", "Assign Regions to Users", PermissionCategory.USER_MANAGEMENT),
    _perm("users.assign_groups", "Assign Groups to Users", PermissionCategory.USER_MANAGEMENT),

    _perm("groups.view", "View Groups", PermissionCategory.GROUP_MANAGEMENT),
    _perm("groups.create", "Create Groups", PermissionCategory.GROUP_MANAGEMENT),
    _perm("groups.edit", "Edit Groups", PermissionCategory.GROUP_MANAGEMENT),
    _perm("groups.delete", "Delete Groups", PermissionCategory.GROUP_MANAGEMENT),

    _perm("settings.view", "View Settings", PermissionCategory.SETTINGS),
    _perm("settings.boundary.edit", "Edit Boundary Settings", PermissionCategory.SETTINGS),
    _perm("settings.map.edit", "Edit Map Settings", PermissionCategory.SETTINGS),

    _perm("search.use", "Use Search", PermissionCategory.SEARCH),
    _perm("search.history.view", "View Search History", PermissionCategory.SEARCH),
    _perm("bookmarks.create", "Create Bookmarks", PermissionCategory.SEARCH),
)

_BY_ID: dict[str, Permission] = {p.id: p for p in PERMISSION_CATALOG}

ALL_PERMISSIONS: frozenset[str] = frozenset(_BY_ID)


def list_permissions() -> list[Permission]:
    return list(PERMISSION_CATALOG)


def get_permission(permission_id: str) -> Permission | None:
    return _BY_ID.get(permission_id)


def is_known_permission(permission_id: str) -> bool:
    return permission_id in _BY_ID


def permissions_by_category(category: PermissionCategory) -> list[Permission]:
    return [p for p in PERMISSION_CATALOG if p.category == category]


# ── Role → default permissions ──────────────────────────────

ROLE_DEFAULTS: dict[Role, PermissionSet] = {
    Role.ADMIN: ALL,

    Role.MANAGER: frozenset(
        [f"gis.{t}.{a}" for t in GIS_TOOLS for a in ("use", "save", "delete.any")]
        + [
            "gis.infrastructure.import",
            "data.view.all", "data.edit.all", "data.delete.all", "data.export",
            "users.view", "users.edit", "users.assign_regions", "users.assign_groups",
            "groups.view",
            "settings.view", "settings.boundary.edit", "settings.map.edit",
            "search.use", "search.history.view",
            "bookmarks.create",
        ]
    ),

    Role.TECHNICIAN: frozenset(
        [f"gis.{t}.{a}" for t in GIS_TOOLS for a in ("use", "save", "delete.own")]
        + [
            "data.view.own", "data.edit.own", "data.delete.own",
            "settings.view",
            "search.use",
            "bookmarks.create",
        ]
    ),

    Role.USER: frozenset({
        "gis.distance.use",
        "gis.polygon.use",
        "gis.circle.use",
        "data.view.own",
        "search.use",
    }),
}


def role_defaults(role: Role | str) -> PermissionSet:
    """Static baseline for a role, or ``ALL`` for Admin."""
    return ROLE_DEFAULTS.get(Role(role), frozenset())
