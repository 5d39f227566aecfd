"""Region resolution for coordinates.

``RegionDirectory.resolve_region`` tries the synchronous boundary index
first and the async reverse geocoder second.  The combined lookup is
bounded by a timeout.  Anything that goes wrong (timeout, transport error,
point outside every known region) yields ``UNRESOLVED``, which is a
handled outcome and not an error.

Resolution never touches grant or request state, so a caller may cancel a
superseded lookup at any point.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from pydantic import BaseModel, ConfigDict, Field

from geoauthz.config import settings
from geoauthz.regions.boundaries import BoundaryTester, GeoJSONBoundaryIndex
from geoauthz.regions.catalog import INDIA_REGIONS, canonical_region
from geoauthz.regions.geocoder import Geocoder, ReverseGeocoder

logger = logging.getLogger(__name__)


class Unresolved(enum.Enum):
    UNRESOLVED = "unresolved"

    def __repr__(self) -> str:
        return "UNRESOLVED"


UNRESOLVED = Unresolved.UNRESOLVED


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class RegionDirectory:
    def __init__(
        self,
        boundaries: BoundaryTester | None = None,
        geocoder: Geocoder | None = None,
        timeout: float | None = None,
    ):
        self.boundaries = boundaries
        self.geocoder = geocoder
        self.timeout = settings.region_lookup_timeout if timeout is None else timeout

    @classmethod
    def from_settings(cls) -> RegionDirectory:
        boundaries = None
        if settings.boundary_geojson_path:
            boundaries = GeoJSONBoundaryIndex.from_file(
                settings.boundary_geojson_path,
                nearest_fallback_km=settings.nearest_region_fallback_km,
            )
        geocoder = ReverseGeocoder() if settings.geocoder_api_key else None
        return cls(boundaries=boundaries, geocoder=geocoder)

    async def _lookup(self, lat: float, lng: float) -> str | None:
        if self.boundaries is not None:
            region = self.boundaries.test_point_in_region(lat, lng)
            if region:
                return region
        if self.geocoder is not None:
            return await self.geocoder.reverse_geocode(lat, lng)
        return None

    async def resolve_region(self, coordinate: Coordinate | tuple[float, float]) -> str | Unresolved:
        if isinstance(coordinate, tuple):
            lat, lng = coordinate
        else:
            lat, lng = coordinate.lat, coordinate.lng

        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return UNRESOLVED

        try:
            region = await asyncio.wait_for(self._lookup(lat, lng), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Region lookup timed out after %.1fs for (%s, %s)", self.timeout, lat, lng)
            return UNRESOLVED
        except Exception:
            logger.exception("Region lookup failed for (%s, %s)", lat, lng)
            return UNRESOLVED

        if not region:
            return UNRESOLVED
        return canonical_region(region)

    def knows(self, region: str) -> bool:
        """True for a catalog region or a region named by the loaded boundaries."""
        name = canonical_region(region)
        if name in INDIA_REGIONS:
            return True
        return name in getattr(self.boundaries, "regions", ())

    async def aclose(self) -> None:
        closer = getattr(self.geocoder, "aclose", None)
        if closer is not None:
            await closer()
