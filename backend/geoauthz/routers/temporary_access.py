"""Temporary region access grants.

Endpoints:
    GET    /api/temporary-access                List grants (Admin/Manager)
    POST   /api/temporary-access                Grant access (Admin/Manager)
    GET    /api/temporary-access/my-access      Caller's active grants
    GET    /api/temporary-access/expiring       Active grants expiring soon (Admin/Manager)
    GET    /api/temporary-access/stats          Counts by status, region, user (Admin/Manager)
    DELETE /api/temporary-access/{grant_id}     Revoke (Admin/Manager)
    POST   /api/temporary-access/{grant_id}/extend   Move expiry (Admin/Manager)
"""

from datetime import timedelta

from fastapi import APIRouter, Body, Depends, Query, status

from geoauthz.auth.deps import get_current_profile, get_engine, require_role
from geoauthz.config import settings
from geoauthz.engine import AuthorizationEngine
from geoauthz.models.grant import GrantStatus
from geoauthz.models.user import Role, UserAuthorizationProfile
from geoauthz.schemas.temporary_access import (
    GrantCreate,
    GrantExtend,
    GrantListOut,
    GrantOut,
    GrantRevoke,
)
from geoauthz.services.grants import GrantStats

router = APIRouter()

_admin_or_manager = require_role(Role.ADMIN, Role.MANAGER)


def _list_out(engine: AuthorizationEngine, grants) -> GrantListOut:
    now = engine.state.now()
    items = [GrantOut.build(g, now) for g in grants]
    return GrantListOut(items=items, total=len(items))


@router.get("", response_model=GrantListOut)
async def list_grants(
    user_id: str | None = Query(default=None),
    region: str | None = Query(default=None),
    granted_by: str | None = Query(default=None),
    grant_status: GrantStatus | None = Query(default=None, alias="status"),
    _: UserAuthorizationProfile = Depends(_admin_or_manager),
    engine: AuthorizationEngine = Depends(get_engine),
):
    grants = engine.grants.list_grants(
        user_id=user_id, region=region, granted_by=granted_by, status=grant_status
    )
    return _list_out(engine, grants)


@router.post("", response_model=GrantOut, status_code=status.HTTP_201_CREATED)
async def create_grant(
    body: GrantCreate,
    admin: UserAuthorizationProfile = Depends(_admin_or_manager),
    engine: AuthorizationEngine = Depends(get_engine),
):
    grant = (
        await engine.grants.grant(
            body.user_id,
            body.region,
            admin.user_id,
            body.expires_at,
            resource_type=body.resource_type,
            resource_id=body.resource_id,
            access_level=body.access_level,
            reason=body.reason,
        )
    ).unwrap()
    return GrantOut.build(grant, engine.state.now())


@router.get("/my-access", response_model=GrantListOut)
async def my_access(
    profile: UserAuthorizationProfile = Depends(get_current_profile),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return _list_out(engine, engine.grants.active_grants(profile.user_id))


@router.get("/expiring", response_model=GrantListOut)
async def expiring_grants(
    hours: int = Query(default=settings.expiring_soon_hours, ge=1, le=24 * 90),
    _: UserAuthorizationProfile = Depends(_admin_or_manager),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return _list_out(engine, engine.grants.expiring_grants(timedelta(hours=hours)))


@router.get("/stats", response_model=GrantStats)
async def grant_stats(
    _: UserAuthorizationProfile = Depends(_admin_or_manager),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return engine.grants.stats()


@router.delete("/{grant_id}", response_model=GrantOut)
async def revoke_grant(
    grant_id: str,
    body: GrantRevoke | None = Body(default=None),
    admin: UserAuthorizationProfile = Depends(_admin_or_manager),
    engine: AuthorizationEngine = Depends(get_engine),
):
    reason = body.reason if body else None
    grant = (await engine.grants.revoke(grant_id, admin.user_id, reason=reason)).unwrap()
    return GrantOut.build(grant, engine.state.now())


@router.post("/{grant_id}/extend", response_model=GrantOut)
async def extend_grant(
    grant_id: str,
    body: GrantExtend,
    admin: UserAuthorizationProfile = Depends(_admin_or_manager),
    engine: AuthorizationEngine = Depends(get_engine),
):
    grant = (await engine.grants.extend(grant_id, body.expires_at, admin.user_id)).unwrap()
    return GrantOut.build(grant, engine.state.now())
