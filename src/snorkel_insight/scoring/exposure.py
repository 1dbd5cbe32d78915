"""
Directional swell exposure for the monitored snorkel sites.

Each site lists the swell bearings it is open to (``unfavorable``) and the
bearings it is sheltered from (``favorable``). A bearing is inside a sector
when its circular distance to the sector centre is at most
``SECTOR_HALF_WIDTH_DEG``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

SECTOR_HALF_WIDTH_DEG = 45.0
NEUTRAL_K = 0.7

WEST_COAST = "west"
EAST_COAST = "east"

REGION_DEFAULT_K: Dict[str, float] = {
    "north": 0.8,
    "south": 0.5,
    "east": 0.6,
    "west": 0.7,
    "culebra": 0.6,
    "vieques": 0.55,
}


@dataclass(frozen=True)
class SiteExposure:
    favorable: Tuple[float, ...]
    unfavorable: Tuple[float, ...]
    k_favorable: float
    k_unfavorable: float


SITE_EXPOSURE: Dict[str, SiteExposure] = {
    "Escambron": SiteExposure((135.0, 180.0), (0.0, 45.0), 0.3, 0.9),
    "Shacks Beach": SiteExposure((180.0,), (315.0, 0.0), 0.35, 0.9),
    "Crash Boat": SiteExposure((90.0, 135.0), (270.0, 315.0), 0.3, 0.85),
    "Steps Beach": SiteExposure((90.0, 135.0), (300.0, 345.0), 0.25, 0.9),
    "Gilligan's Island": SiteExposure((0.0, 45.0), (180.0, 225.0), 0.2, 0.6),
    "La Parguera": SiteExposure((0.0,), (180.0,), 0.2, 0.5),
    "Seven Seas": SiteExposure((225.0, 270.0), (45.0, 90.0), 0.3, 0.8),
    "Flamenco": SiteExposure((180.0, 225.0), (0.0, 315.0), 0.3, 0.9),
    "Tamarindo": SiteExposure((90.0, 45.0), (270.0,), 0.2, 0.75),
    "Carlos Rosario": SiteExposure((90.0,), (270.0, 315.0), 0.25, 0.85),
    "Blue Beach": SiteExposure((0.0, 315.0), (135.0, 180.0), 0.3, 0.7),
}


def angular_distance(a: float, b: float) -> float:
    """Smallest angle between two bearings, in [0, 180]."""
    diff = abs(a - b) % 360.0
    return min(diff, 360.0 - diff)


def in_sector(bearing: float, center: float, half_width: float = SECTOR_HALF_WIDTH_DEG) -> bool:
    return angular_distance(bearing, center) <= half_width


def directional_coefficient(
    site_name: Optional[str],
    region: Optional[str],
    swell_direction: Optional[float],
    *,
    table: Mapping[str, SiteExposure] = SITE_EXPOSURE,
) -> float:
    """
    Resolve the exposure coefficient K for a site and swell bearing.

    Favorable sectors win over unfavorable ones when a bearing falls in both.
    Unknown sites fall back to the region default, then to ``NEUTRAL_K``.
    """
    exposure = table.get(site_name) if site_name else None
    if exposure is None:
        return REGION_DEFAULT_K.get((region or "").lower(), NEUTRAL_K)
    if swell_direction is None:
        return NEUTRAL_K
    if any(in_sector(swell_direction, c) for c in exposure.favorable):
        return exposure.k_favorable
    if any(in_sector(swell_direction, c) for c in exposure.unfavorable):
        return exposure.k_unfavorable
    return NEUTRAL_K
