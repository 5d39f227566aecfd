"""Async reverse geocoding (OpenRouteService-compatible).

Only used as a fallback when the boundary index has no match.  Every
failure (transport, HTTP status, malformed payload) is logged and returned
as ``None``; the caller decides what an unresolved lookup means.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from geoauthz.config import settings
from geoauthz.regions.catalog import canonical_region

logger = logging.getLogger(__name__)

REGION_PROPERTIES = ("region", "state", "macroregion")


class Geocoder(Protocol):
    async def reverse_geocode(self, lat: float, lng: float) -> str | None: ...


class ReverseGeocoder:
    """Reverse geocoder backed by ``httpx.AsyncClient``.

    Pass ``client`` to share a connection pool (or to inject a mock
    transport in tests); otherwise a client is created per instance and
    closed with ``aclose()``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = settings.geocoder_api_key if api_key is None else api_key
        self.url = url or settings.geocoder_url
        self.timeout = settings.region_lookup_timeout if timeout is None else timeout
        self._client = client
        self._owns_client = client is None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def reverse_geocode(self, lat: float, lng: float) -> str | None:
        if not self.enabled:
            return None

        params = {
            "api_key": self.api_key,
            "point.lat": lat,
            "point.lon": lng,
            "size": 1,
        }
        try:
            response = await self._get_client().get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Reverse geocode failed for ({lat}, {lng}): {e}")
            return None
        except ValueError as e:
            logger.warning(f"Reverse geocode returned invalid JSON: {e}")
            return None

        features = payload.get("features") if isinstance(payload, dict) else None
        if not features or not isinstance(features[0], dict):
            return None
        props = features[0].get("properties") or {}
        for key in REGION_PROPERTIES:
            value = props.get(key)
            if isinstance(value, str) and value.strip():
                return canonical_region(value)
        return None
