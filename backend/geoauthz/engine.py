"""AuthorizationEngine: one object wiring the arena, services and region lookup.

    engine = AuthorizationEngine(store, regions=RegionDirectory.from_settings())
    await engine.load()
    decision = await engine.authorize("u-17", "gis.polygon.use", Target(coordinate=pt))
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from geoauthz.auth.decision import Decision, Target, authorize
from geoauthz.config import settings
from geoauthz.models.user import UserAuthorizationProfile
from geoauthz.regions.directory import RegionDirectory
from geoauthz.services.grants import TemporaryAccessLedger
from geoauthz.services.groups import GroupRegistry
from geoauthz.services.profiles import ProfileService
from geoauthz.services.region_requests import RegionRequestWorkflow
from geoauthz.services.state import AuthzState
from geoauthz.store.base import AuthzStore
from geoauthz.store.memory import InMemoryStore
from geoauthz.utils.clock import utcnow

logger = logging.getLogger(__name__)


class AuthorizationEngine:
    def __init__(
        self,
        store: AuthzStore,
        regions: RegionDirectory | None = None,
        clock: Callable[[], datetime] = utcnow,
        fail_open: bool | None = None,
    ):
        self.state = AuthzState(store, clock=clock)
        self.regions = regions or RegionDirectory()
        self.fail_open = settings.region_fail_open if fail_open is None else fail_open
        self.grants = TemporaryAccessLedger(self.state, known_region=self.regions.knows)
        self.requests = RegionRequestWorkflow(self.state)
        self.groups = GroupRegistry(self.state)
        self.profiles = ProfileService(self.state)

    @property
    def store(self) -> AuthzStore:
        return self.state.store

    async def load(self) -> None:
        await self.state.load()

    async def login(self, user_id: str) -> UserAuthorizationProfile | None:
        """Refresh one user's profile from the store."""
        return await self.state.refresh_profile(user_id)

    def profile(self, user_id: str) -> UserAuthorizationProfile | None:
        return self.state.profiles.get(user_id)

    async def authorize_profile(
        self,
        profile: UserAuthorizationProfile,
        action: str,
        target: Target | None = None,
    ) -> Decision:
        target = self._with_owner_regions(target)
        return await authorize(
            profile,
            self.state.groups_for(profile),
            self.state.grants_for(profile.user_id),
            action,
            target,
            regions=self.regions,
            now=self.state.now(),
            fail_open=self.fail_open,
        )

    def _with_owner_regions(self, target: Target | None) -> Target | None:
        if target is None or target.resource_owner_id is None or target.owner_regions:
            return target
        owner = self.profile(target.resource_owner_id)
        if owner is None or not owner.assigned_regions:
            return target
        return target.model_copy(update={"owner_regions": owner.assigned_regions})

    async def authorize(self, user_id: str, action: str, target: Target | None = None) -> Decision:
        profile = self.profile(user_id)
        if profile is None:
            return Decision.deny(f"unknown user: {user_id}")
        return await self.authorize_profile(profile, action, target)

    async def aclose(self) -> None:
        await self.regions.aclose()


async def create_engine() -> AuthorizationEngine:
    """Build and load an engine from ``settings``."""
    if settings.store_backend == "redis":
        from geoauthz.store.redis_store import RedisStore
        store: AuthzStore = RedisStore()
    else:
        store = InMemoryStore()
    engine = AuthorizationEngine(store, regions=RegionDirectory.from_settings())
    await engine.load()
    logger.info("Authorization engine ready (store=%s)", settings.store_backend)
    return engine
