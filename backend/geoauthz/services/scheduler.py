"""Background housekeeping for temporary access grants.

Grant expiry is evaluated lazily at every check, so nothing here is needed
for correctness.  The loop only reports what an admin dashboard would
show: grants that lapsed since the last pass and grants about to expire.

Uses FastAPI's lifespan context to build the engine and start/stop an
asyncio background loop.  No external scheduler.

Configuration (via .env):
    HOUSEKEEPING_INTERVAL_SECONDS=300
    EXPIRING_SOON_HOURS=24
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from fastapi import FastAPI

from geoauthz.config import settings
from geoauthz.engine import AuthorizationEngine, create_engine
from geoauthz.models.grant import GrantStatus
from geoauthz.utils.redis import close_redis

logger = logging.getLogger("geoauthz.scheduler")


def run_housekeeping(
    engine: AuthorizationEngine, since: datetime | None = None
) -> dict:
    """Summarise grant state at the engine's current time.

    ``lapsed`` counts grants whose expiry fell in ``(since, now]``.
    """
    now = engine.state.now()
    expiring = engine.grants.expiring_grants(
        timedelta(hours=settings.expiring_soon_hours), as_of=now
    )
    lapsed = [
        g for g in engine.grants.list_grants(status=GrantStatus.EXPIRED, as_of=now)
        if since is None or g.expires_at > since
    ]
    stats = engine.grants.stats(as_of=now)

    for grant in lapsed:
        logger.info(
            "Temporary access %s for %s in %s expired at %s",
            grant.id, grant.user_id, grant.region, grant.expires_at.isoformat(),
        )

    summary = {
        "checked_at": now.isoformat(),
        "active": stats.active,
        "expired": stats.expired,
        "revoked": stats.revoked,
        "lapsed_since_last_run": len(lapsed),
        "expiring_soon": [g.id for g in expiring],
        "pending_region_requests": engine.requests.stats().pending,
    }
    logger.info(
        "Housekeeping: %d active, %d lapsed, %d expiring within %dh, %d pending requests",
        stats.active,
        len(lapsed),
        len(expiring),
        settings.expiring_soon_hours,
        summary["pending_region_requests"],
    )
    return summary


async def _scheduler_loop(engine: AuthorizationEngine) -> None:
    """Sleep loop that runs housekeeping every configured interval."""
    interval = settings.housekeeping_interval_seconds
    last_run: datetime | None = None

    while True:
        await asyncio.sleep(interval)
        try:
            run_housekeeping(engine, since=last_run)
        except Exception:
            logger.exception("Unhandled error in grant housekeeping")
        last_run = engine.state.now()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan: build the engine, start housekeeping, clean up on shutdown."""
    engine = await create_engine()
    app.state.engine = engine
    task = asyncio.create_task(_scheduler_loop(engine))
    logger.info("Grant housekeeping started (every %ds)", settings.housekeeping_interval_seconds)
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        await engine.aclose()
        await close_redis()
        logger.info("Grant housekeeping stopped")
