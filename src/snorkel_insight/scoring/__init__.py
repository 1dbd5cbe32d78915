"""Snorkel suitability scoring engine."""
from .exposure import SITE_EXPOSURE, SiteExposure, angular_distance, directional_coefficient, in_sector
from .suitability import score_suitability

__all__ = [
    "SITE_EXPOSURE",
    "SiteExposure",
    "angular_distance",
    "directional_coefficient",
    "in_sector",
    "score_suitability",
]
