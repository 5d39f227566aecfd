"""FastAPI dependencies for identifying the caller and gating endpoints.

Authentication happens upstream: the gateway verifies the session and
forwards the user id in ``X-User-Id``.  This service only authorizes.

Dependencies:
  get_engine              → the AuthorizationEngine built in the lifespan
  get_current_profile     → the caller's UserAuthorizationProfile
  require_role(...)       → restrict to specific roles
  require_permission(...) → restrict to users holding ALL listed permissions
"""

from fastapi import Depends, Header, HTTPException, Request, status

from geoauthz.auth.resolution import has_permission
from geoauthz.engine import AuthorizationEngine
from geoauthz.models.user import Role, UserAuthorizationProfile


def get_engine(request: Request) -> AuthorizationEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authorization engine not initialised",
        )
    return engine


# ── Core user dependency ────────────────────────────────────

async def get_current_profile(
    x_user_id: str | None = Header(default=None),
    engine: AuthorizationEngine = Depends(get_engine),
) -> UserAuthorizationProfile:
    """Resolve the trusted ``X-User-Id`` header to a loaded profile."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    profile = engine.profiles.get(x_user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )
    return profile


# ── Role-based access control ───────────────────────────────

def require_role(*roles: Role):
    """Dependency factory: restrict to one or more roles.

    Usage:
        @router.post("/{request_id}/approve")
        async def approve(user = Depends(require_role(Role.ADMIN, Role.MANAGER))):
            ...
    """
    async def _check(
        profile: UserAuthorizationProfile = Depends(get_current_profile),
    ) -> UserAuthorizationProfile:
        if profile.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(r.value for r in roles)}",
            )
        return profile

    return _check


# ── Permission-based access control ─────────────────────────

def require_permission(*perms: str):
    """Dependency factory: restrict to users who hold ALL listed permissions.

    Usage:
        @router.post("/groups")
        async def create_group(user = Depends(require_permission("groups.create"))):
            ...
    """
    async def _check(
        profile: UserAuthorizationProfile = Depends(get_current_profile),
        engine: AuthorizationEngine = Depends(get_engine),
    ) -> UserAuthorizationProfile:
        effective = engine.profiles.effective_permissions(profile.user_id)
        missing = [p for p in perms if not has_permission(effective.all, p)]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(missing)}",
            )
        return profile

    return _check
