"""Activity trail (Admin only).

Endpoints:
    GET  /api/activity    Most recent entries first
"""

from fastapi import APIRouter, Depends, Query

from geoauthz.auth.deps import get_engine, require_role
from geoauthz.engine import AuthorizationEngine
from geoauthz.models.activity import ActivityEntry
from geoauthz.models.user import Role, UserAuthorizationProfile

router = APIRouter()


@router.get("", response_model=list[ActivityEntry])
async def list_activity(
    limit: int = Query(default=100, ge=1, le=1000),
    _: UserAuthorizationProfile = Depends(require_role(Role.ADMIN)),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return await engine.store.load_activity(limit=limit)
