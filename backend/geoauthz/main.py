from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from geoauthz.config import settings
from geoauthz.middleware.exceptions import register_exception_handlers
from geoauthz.routers import (
    activity,
    authorize,
    groups,
    health,
    permissions,
    region_requests,
    temporary_access,
)
from geoauthz.services.scheduler import lifespan

app = FastAPI(
    title="GeoAuthZ",
    description="Authorization engine for field GIS tools: roles, groups, geofencing, temporary access",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(permissions.router, prefix="/api/permissions", tags=["permissions"])
app.include_router(authorize.router, prefix="/api/authorize", tags=["authorize"])
app.include_router(temporary_access.router, prefix="/api/temporary-access", tags=["temporary-access"])
app.include_router(region_requests.router, prefix="/api/region-requests", tags=["region-requests"])
app.include_router(groups.router, prefix="/api/groups", tags=["groups"])
app.include_router(activity.router, prefix="/api/activity", tags=["activity"])
