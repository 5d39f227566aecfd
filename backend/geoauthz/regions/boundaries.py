"""Point-in-region tests against GeoJSON state boundaries.

The index is built once from a FeatureCollection (Polygon or MultiPolygon
features).  Each feature's region name is read from the first of
``NAME_1``, ``ST_NM``, ``st_nm`` or ``name`` that is present.  Lookups are
synchronous and pure: ray casting over the outer ring, with holes
excluded.

When a point falls outside every polygon (coastline simplification, survey
points just offshore) the index can fall back to the region whose centre is
nearest, provided it is within ``nearest_fallback_km``.  The centre is the
catalog centroid where one exists, else the bounding box centre.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from geoauthz.regions.catalog import REGION_CENTROIDS, canonical_region

logger = logging.getLogger(__name__)

NAME_PROPERTIES = ("NAME_1", "ST_NM", "st_nm", "name")

EARTH_RADIUS_KM = 6371.0088

Ring = list[tuple[float, float]]  # (lng, lat) pairs, GeoJSON order


class BoundaryTester(Protocol):
    def test_point_in_region(self, lat: float, lng: float) -> str | None: ...


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def point_in_ring(lat: float, lng: float, ring: Ring) -> bool:
    """Even-odd ray casting.  ``ring`` holds (lng, lat) vertices."""
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lng < x_cross:
                inside = not inside
        j = i
    return inside


@dataclass
class RegionShape:
    region: str
    # Each polygon is [outer, hole, hole, ...]
    polygons: list[list[Ring]] = field(default_factory=list)

    def contains(self, lat: float, lng: float) -> bool:
        for rings in self.polygons:
            if not rings or not point_in_ring(lat, lng, rings[0]):
                continue
            if any(point_in_ring(lat, lng, hole) for hole in rings[1:]):
                continue
            return True
        return False

    def center(self) -> tuple[float, float]:
        """Centre of the bounding box as (lat, lng)."""
        lngs = [p[0] for rings in self.polygons for p in rings[0]]
        lats = [p[1] for rings in self.polygons for p in rings[0]]
        return (min(lats) + max(lats)) / 2, (min(lngs) + max(lngs)) / 2


def _feature_name(properties: dict[str, Any]) -> str | None:
    for key in NAME_PROPERTIES:
        value = properties.get(key)
        if isinstance(value, str) and value.strip():
            return canonical_region(value)
    return None


def _rings(coords: list) -> list[Ring] | None:
    """Outer ring plus holes, or None when there is no usable outer ring."""
    rings = [[(float(pt[0]), float(pt[1])) for pt in ring] for ring in coords or []]
    if not rings or len(rings[0]) < 3:
        return None
    # Degenerate holes cannot contain anything
    return [rings[0]] + [hole for hole in rings[1:] if len(hole) >= 3]


class GeoJSONBoundaryIndex:
    """In-memory boundary tester built from a GeoJSON FeatureCollection."""

    def __init__(self, shapes: list[RegionShape], nearest_fallback_km: float = 0.0):
        self.shapes = shapes
        self.nearest_fallback_km = nearest_fallback_km

    @classmethod
    def from_geojson(
        cls, data: dict[str, Any], nearest_fallback_km: float = 0.0
    ) -> GeoJSONBoundaryIndex:
        by_region: dict[str, RegionShape] = {}
        skipped = 0
        for feature in data.get("features", []):
            geometry = feature.get("geometry") or {}
            name = _feature_name(feature.get("properties") or {})
            if name is None:
                skipped += 1
                continue
            shape = by_region.setdefault(name, RegionShape(region=name))
            gtype = geometry.get("type")
            if gtype == "Polygon":
                polygons = [geometry.get("coordinates")]
            elif gtype == "MultiPolygon":
                polygons = geometry.get("coordinates") or []
            else:
                skipped += 1
                continue
            for poly in polygons:
                rings = _rings(poly)
                if rings is None:
                    skipped += 1
                    continue
                shape.polygons.append(rings)
        if skipped:
            logger.warning("Skipped %d boundary features or polygons without a name or usable ring", skipped)
        shapes = [s for s in by_region.values() if s.polygons]
        logger.info("Loaded boundaries for %d regions", len(shapes))
        return cls(shapes, nearest_fallback_km=nearest_fallback_km)

    @classmethod
    def from_file(cls, path: str | Path, nearest_fallback_km: float = 0.0) -> GeoJSONBoundaryIndex:
        with open(path, encoding="utf-8") as fh:
            return cls.from_geojson(json.load(fh), nearest_fallback_km=nearest_fallback_km)

    @property
    def regions(self) -> list[str]:
        return [s.region for s in self.shapes]

    def test_point_in_region(self, lat: float, lng: float) -> str | None:
        for shape in self.shapes:
            if shape.contains(lat, lng):
                return shape.region

        if self.nearest_fallback_km <= 0 or not self.shapes:
            return None

        nearest: tuple[str, float] | None = None
        for shape in self.shapes:
            c_lat, c_lng = REGION_CENTROIDS.get(shape.region) or shape.center()
            distance = haversine_km(lat, lng, c_lat, c_lng)
            if nearest is None or distance < nearest[1]:
                nearest = (shape.region, distance)

        if nearest and nearest[1] < self.nearest_fallback_km:
            logger.warning(
                "No exact boundary match for (%.5f, %.5f); using nearest region %s (%.0f km)",
                lat, lng, nearest[0], nearest[1],
            )
            return nearest[0]
        return None
