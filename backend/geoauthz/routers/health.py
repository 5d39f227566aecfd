"""Health check endpoints for load balancers and monitoring."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from geoauthz.auth.deps import get_engine
from geoauthz.config import settings
from geoauthz.engine import AuthorizationEngine
from geoauthz.utils.clock import utcnow
from geoauthz.utils.redis import ping_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight liveness check (no store check)."""
    return {
        "status": "ok",
        "service": "GeoAuthZ",
        "timestamp": utcnow().isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(engine: AuthorizationEngine = Depends(get_engine)):
    """Readiness: engine loaded and, for the Redis backend, Redis reachable."""
    checks = {
        "engine": "ok",
        "store": settings.store_backend,
        "redis": "skipped",
        "profiles": len(engine.state.profiles),
    }
    healthy = True
    if settings.store_backend == "redis":
        if await ping_redis():
            checks["redis"] = "ok"
        else:
            checks["redis"] = "unreachable"
            healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "service": "GeoAuthZ",
            "checks": checks,
            "timestamp": utcnow().isoformat(),
        },
    )
