"""Region access requests.

Endpoints:
    GET    /api/region-requests                     Own requests (all for Admin/Manager)
    POST   /api/region-requests                     Submit a request
    GET    /api/region-requests/stats               Counts (Admin/Manager)
    POST   /api/region-requests/{request_id}/approve   Approve (Admin/Manager)
    POST   /api/region-requests/{request_id}/reject    Reject (Admin/Manager)
    POST   /api/region-requests/{request_id}/cancel    Withdraw (requester)
"""

from fastapi import APIRouter, Body, Depends, Query, status

from geoauthz.auth.deps import get_current_profile, get_engine, require_role
from geoauthz.engine import AuthorizationEngine
from geoauthz.models.region_request import RegionRequest, RequestStatus
from geoauthz.models.user import Role, UserAuthorizationProfile
from geoauthz.schemas.region_requests import RegionRequestCreate, RegionRequestListOut, ReviewIn
from geoauthz.services.region_requests import RequestStats

router = APIRouter()

_reviewer = require_role(Role.ADMIN, Role.MANAGER)


@router.get("", response_model=RegionRequestListOut)
async def list_requests(
    request_status: RequestStatus | None = Query(default=None, alias="status"),
    region: str | None = Query(default=None),
    user_id: str | None = Query(default=None),
    profile: UserAuthorizationProfile = Depends(get_current_profile),
    engine: AuthorizationEngine = Depends(get_engine),
):
    if profile.role not in (Role.ADMIN, Role.MANAGER):
        user_id = profile.user_id
    items = engine.requests.list_requests(user_id=user_id, status=request_status, region=region)
    return RegionRequestListOut(items=items, total=len(items))


@router.post("", response_model=RegionRequest, status_code=status.HTTP_201_CREATED)
async def create_request(
    body: RegionRequestCreate,
    profile: UserAuthorizationProfile = Depends(get_current_profile),
    engine: AuthorizationEngine = Depends(get_engine),
):
    outcome = await engine.requests.create(
        profile.user_id, body.region, body.request_type, body.reason
    )
    return outcome.unwrap()


@router.get("/stats", response_model=RequestStats)
async def request_stats(
    _: UserAuthorizationProfile = Depends(_reviewer),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return engine.requests.stats()


@router.post("/{request_id}/approve", response_model=RegionRequest)
async def approve_request(
    request_id: str,
    body: ReviewIn | None = Body(default=None),
    reviewer: UserAuthorizationProfile = Depends(_reviewer),
    engine: AuthorizationEngine = Depends(get_engine),
):
    notes = body.notes if body else None
    return (await engine.requests.approve(request_id, reviewer.user_id, notes)).unwrap()


@router.post("/{request_id}/reject", response_model=RegionRequest)
async def reject_request(
    request_id: str,
    body: ReviewIn | None = Body(default=None),
    reviewer: UserAuthorizationProfile = Depends(_reviewer),
    engine: AuthorizationEngine = Depends(get_engine),
):
    notes = body.notes if body else None
    return (await engine.requests.reject(request_id, reviewer.user_id, notes)).unwrap()


@router.post("/{request_id}/cancel", response_model=RegionRequest)
async def cancel_request(
    request_id: str,
    profile: UserAuthorizationProfile = Depends(get_current_profile),
    engine: AuthorizationEngine = Depends(get_engine),
):
    return (await engine.requests.cancel(request_id, profile.user_id)).unwrap()
