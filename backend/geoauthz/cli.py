"""Management CLI.

Usage:
    python -m geoauthz.cli list-permissions          # Print the permission catalog
    python -m geoauthz.cli role-defaults <role>      # Print a role's baseline
    python -m geoauthz.cli list-regions              # Print regions grouped by zone
    python -m geoauthz.cli housekeeping              # Summarise grants in the configured store
"""

import asyncio
import json
import sys

from geoauthz.auth.permissions import ALL, PermissionCategory, Wildcard, permissions_by_category, role_defaults
from geoauthz.models.user import Role
from geoauthz.regions.catalog import INDIA_REGIONS, REGION_ZONES, regions_in_zone, zone_for_region


def list_permissions():
    for category in PermissionCategory:
        print(f"{category.value}:")
        for perm in permissions_by_category(category):
            scope = f" [{perm.scope.value}]" if perm.scope else ""
            print(f"  {perm.id:<36} {perm.name}{scope}")


def show_role_defaults(role: str):
    try:
        parsed = Role(role)
    except ValueError:
        print(f"Unknown role '{role}'. Choose from: {', '.join(r.value for r in Role)}")
        return 1
    defaults = role_defaults(parsed)
    if isinstance(defaults, Wildcard):
        print(f"  {ALL.value}  (every permission)")
        return 0
    for perm in sorted(defaults):
        print(f"  {perm}")
    print(f"\n{len(defaults)} permission(s)")
    return 0


def list_regions():
    for zone in REGION_ZONES:
        print(f"{zone}:")
        for region in regions_in_zone(zone):
            print(f"  {region}")
    leftover = [r for r in INDIA_REGIONS if zone_for_region(r) is None]
    if leftover:
        print("Unzoned:")
        for region in leftover:
            print(f"  {region}")
    print(f"\n{len(INDIA_REGIONS)} region(s)")


async def _housekeeping():
    from geoauthz.engine import create_engine
    from geoauthz.services.scheduler import run_housekeeping
    from geoauthz.utils.redis import close_redis

    engine = await create_engine()
    try:
        print(json.dumps(run_housekeeping(engine), indent=2))
    finally:
        await engine.aclose()
        await close_redis()


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    cmd = args[0] if args else ""
    if cmd == "list-permissions":
        list_permissions()
    elif cmd == "role-defaults" and len(args) > 1:
        return show_role_defaults(args[1])
    elif cmd == "list-regions":
        list_regions()
    elif cmd == "housekeeping":
        asyncio.run(_housekeeping())
    else:
        print("Usage: python -m geoauthz.cli [list-permissions|role-defaults <role>|list-regions|housekeeping]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
