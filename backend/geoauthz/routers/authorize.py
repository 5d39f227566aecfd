"""Decision endpoint.

Endpoints:
    POST /api/authorize    Evaluate an action for the caller (or, for
                           Admin/Manager, for ``user_id``)

Always answers 200 with a decision; a denial carries the reason to show
the user verbatim.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from geoauthz.auth.deps import get_current_profile, get_engine
from geoauthz.engine import AuthorizationEngine
from geoauthz.models.user import Role, UserAuthorizationProfile
from geoauthz.schemas.authorize import AuthorizeRequest, DecisionOut

router = APIRouter()


@router.post("", response_model=DecisionOut)
async def authorize_action(
    body: AuthorizeRequest,
    profile: UserAuthorizationProfile = Depends(get_current_profile),
    engine: AuthorizationEngine = Depends(get_engine),
):
    subject = profile.user_id
    if body.user_id and body.user_id != profile.user_id:
        if profile.role not in (Role.ADMIN, Role.MANAGER):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only Admin or Manager can evaluate other users",
            )
        subject = body.user_id

    decision = await engine.authorize(subject, body.action, body.target)
    return DecisionOut(
        user_id=subject,
        action=body.action,
        allowed=decision.allowed,
        reason=decision.reason,
        region=decision.region,
    )
