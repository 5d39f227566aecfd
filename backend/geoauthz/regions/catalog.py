"""Indian states and union territories used as region identifiers.

28 states + 8 union territories = 36 canonical regions.  Names coming from
boundary files, reverse geocoders and user input are normalised with
``canonical_region`` before they are compared or stored.  Names that are
not in the directory pass through trimmed, so deployments can still use
custom region ids (circles, districts) alongside the states.
"""

from __future__ import annotations

import re

INDIA_STATES: tuple[str, ...] = (
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand",
    "Karnataka", "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur",
    "Meghalaya", "Mizoram", "Nagaland", "Odisha", "Punjab",
    "Rajasthan", "Sikkim", "Tamil Nadu", "Telangana", "Tripura",
    "Uttar Pradesh", "Uttarakhand", "West Bengal",
)

UNION_TERRITORIES: tuple[str, ...] = (
    "Andaman and Nicobar Islands", "Chandigarh",
    "Dadra and Nagar Haveli and Daman and Diu", "Delhi",
    "Jammu and Kashmir", "Ladakh", "Lakshadweep", "Puducherry",
)

INDIA_REGIONS: tuple[str, ...] = INDIA_STATES + UNION_TERRITORIES

# (lat, lon), used by the nearest-region fallback
REGION_CENTROIDS: dict[str, tuple[float, float]] = {
    "Andhra Pradesh": (15.9129, 79.7400),
    "Arunachal Pradesh": (28.2180, 94.7278),
    "Assam": (26.2006, 92.9376),
    "Bihar": (25.0961, 85.3131),
    "Chhattisgarh": (21.2787, 81.8661),
    "Goa": (15.2993, 74.1240),
    "Gujarat": (22.2587, 71.1924),
    "Haryana": (29.0588, 76.0856),
    "Himachal Pradesh": (31.1048, 77.1734),
    "Jharkhand": (23.6102, 85.2799),
    "Karnataka": (15.3173, 75.7139),
    "Kerala": (10.8505, 76.2711),
    "Madhya Pradesh": (22.9734, 78.6569),
    "Maharashtra": (19.7515, 75.7139),
    "Manipur": (24.6637, 93.9063),
    "Meghalaya": (25.4670, 91.3662),
    "Mizoram": (23.1645, 92.9376),
    "Nagaland": (26.1584, 94.5624),
    "Odisha": (20.9517, 85.0985),
    "Punjab": (31.1471, 75.3412),
    "Rajasthan": (27.0238, 74.2179),
    "Sikkim": (27.5330, 88.5122),
    "Tamil Nadu": (11.1271, 78.6569),
    "Telangana": (18.1124, 79.0193),
    "Tripura": (23.9408, 91.9882),
    "Uttar Pradesh": (26.8467, 80.9462),
    "Uttarakhand": (30.0668, 79.0193),
    "West Bengal": (22.9868, 87.8550),
    "Andaman and Nicobar Islands": (11.7401, 92.6586),
    "Chandigarh": (30.7333, 76.7794),
    "Dadra and Nagar Haveli and Daman and Diu": (20.1809, 73.0169),
    "Delhi": (28.7041, 77.1025),
    "Jammu and Kashmir": (33.7782, 76.5762),
    "Ladakh": (34.1526, 77.5771),
    "Lakshadweep": (10.5667, 72.6417),
    "Puducherry": (11.9416, 79.8083),
}

REGION_CODES: dict[str, str] = {
    "AP": "Andhra Pradesh", "AR": "Arunachal Pradesh", "AS": "Assam",
    "BR": "Bihar", "CT": "Chhattisgarh", "CG": "Chhattisgarh", "GA": "Goa",
    "GJ": "Gujarat", "HR": "Haryana", "HP": "Himachal Pradesh",
    "JH": "Jharkhand", "KA": "Karnataka", "KL": "Kerala",
    "MP": "Madhya Pradesh", "MH": "Maharashtra", "MN": "Manipur",
    "ML": "Meghalaya", "MZ": "Mizoram", "NL": "Nagaland", "OR": "Odisha",
    "OD": "Odisha", "PB": "Punjab", "RJ": "Rajasthan", "SK": "Sikkim",
    "TN": "Tamil Nadu", "TG": "Telangana", "TS": "Telangana", "TR": "Tripura",
    "UP": "Uttar Pradesh", "UK": "Uttarakhand", "UT": "Uttarakhand",
    "WB": "West Bengal", "AN": "Andaman and Nicobar Islands",
    "CH": "Chandigarh", "DH": "Dadra and Nagar Haveli and Daman and Diu",
    "DN": "Dadra and Nagar Haveli and Daman and Diu",
    "DD": "Dadra and Nagar Haveli and Daman and Diu", "DL": "Delhi",
    "JK": "Jammu and Kashmir", "LA": "Ladakh", "LD": "Lakshadweep",
    "PY": "Puducherry",
}

# Spellings seen in boundary files and geocoder responses
REGION_ALIASES: dict[str, str] = {
    "nct of delhi": "Delhi",
    "national capital territory of delhi": "Delhi",
    "new delhi": "Delhi",
    "orissa": "Odisha",
    "pondicherry": "Puducherry",
    "uttaranchal": "Uttarakhand",
    "andaman and nicobar": "Andaman and Nicobar Islands",
    "andaman & nicobar islands": "Andaman and Nicobar Islands",
    "andaman & nicobar": "Andaman and Nicobar Islands",
    "dadra and nagar haveli": "Dadra and Nagar Haveli and Daman and Diu",
    "daman and diu": "Dadra and Nagar Haveli and Daman and Diu",
    "dadra & nagar haveli and daman & diu": "Dadra and Nagar Haveli and Daman and Diu",
    "jammu & kashmir": "Jammu and Kashmir",
}

_BY_LOWER: dict[str, str] = {name.lower(): name for name in INDIA_REGIONS}


def canonical_region(name: str) -> str:
    """Normalise a region name to its canonical spelling."""
    cleaned = re.sub(r"\s+", " ", name).strip()
    if cleaned.upper() in REGION_CODES:
        return REGION_CODES[cleaned.upper()]
    if cleaned.upper().startswith("IN-") and cleaned[3:].upper() in REGION_CODES:
        return REGION_CODES[cleaned[3:].upper()]
    lowered = cleaned.lower()
    if lowered in _BY_LOWER:
        return _BY_LOWER[lowered]
    if lowered in REGION_ALIASES:
        return REGION_ALIASES[lowered]
    return cleaned


def is_known_region(name: str) -> bool:
    return canonical_region(name) in _BY_LOWER.values()


# ── Zones ───────────────────────────────────────────────────

REGION_ZONES: dict[str, tuple[str, ...]] = {
    "North Zone": (
        "Punjab", "Haryana", "Delhi", "Himachal Pradesh", "Uttarakhand",
        "Chandigarh", "Jammu and Kashmir", "Ladakh",
    ),
    "South Zone": (
        "Karnataka", "Tamil Nadu", "Kerala", "Andhra Pradesh", "Telangana",
        "Puducherry", "Lakshadweep", "Andaman and Nicobar Islands",
    ),
    "East Zone": (
        "West Bengal", "Bihar", "Jharkhand", "Odisha", "Assam",
        "Arunachal Pradesh", "Manipur", "Meghalaya", "Mizoram", "Nagaland",
        "Sikkim", "Tripura",
    ),
    "West Zone": (
        "Maharashtra", "Gujarat", "Goa", "Rajasthan",
        "Dadra and Nagar Haveli and Daman and Diu",
    ),
    "Central Zone": ("Madhya Pradesh", "Chhattisgarh", "Uttar Pradesh"),
}


def canonical_zone(name: str) -> str:
    """Map "north", "NORTH ZONE" etc. to "North Zone"; unknown names pass through."""
    cleaned = " ".join(name.split())
    lowered = cleaned.lower()
    for zone in REGION_ZONES:
        if lowered in (zone.lower(), zone.lower().removesuffix(" zone")):
            return zone
    return cleaned


def zone_for_region(region: str) -> str | None:
    canonical = canonical_region(region)
    for zone, members in REGION_ZONES.items():
        if canonical in members:
            return zone
    return None


def regions_in_zone(zone: str) -> tuple[str, ...]:
    return REGION_ZONES.get(zone, ())
