"""Permission catalog and role default views.

Endpoints:
    GET  /api/permissions               Full catalog (optionally by category)
    GET  /api/permissions/roles/{role}  Role baseline ("*" for Admin)
    GET  /api/permissions/me            Caller's effective permissions and regions
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from geoauthz.auth.deps import get_current_profile, get_engine
from geoauthz.auth.permissions import (
    ALL,
    PermissionCategory,
    Wildcard,
    list_permissions,
    permissions_by_category,
    role_defaults,
)
from geoauthz.engine import AuthorizationEngine
from geoauthz.models.user import Role, UserAuthorizationProfile
from geoauthz.schemas.authorize import MyPermissionsOut, PermissionCatalogOut, RolePermissionsOut

router = APIRouter()


@router.get("", response_model=PermissionCatalogOut)
async def get_catalog(category: PermissionCategory | None = Query(default=None)):
    items = permissions_by_category(category) if category else list_permissions()
    return PermissionCatalogOut(items=items, total=len(items))


@router.get("/roles/{role}", response_model=RolePermissionsOut)
async def get_role_defaults(role: str):
    try:
        parsed = Role(role)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown role '{role}'")
    defaults = role_defaults(parsed)
    permissions = [ALL.value] if isinstance(defaults, Wildcard) else sorted(defaults)
    return RolePermissionsOut(role=parsed.value, permissions=permissions)


@router.get("/me", response_model=MyPermissionsOut)
async def get_my_permissions(
    profile: UserAuthorizationProfile = Depends(get_current_profile),
    engine: AuthorizationEngine = Depends(get_engine),
):
    effective = engine.profiles.effective_permissions(profile.user_id)
    return MyPermissionsOut(
        user_id=profile.user_id,
        role=profile.role.value,
        direct=sorted(effective.direct),
        from_groups=sorted(effective.from_groups),
        all=effective.sorted_ids(),
        regions=sorted(engine.profiles.effective_regions(profile.user_id)),
    )
