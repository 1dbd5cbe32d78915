"""Snorkeling suitability score (0-100) for one hourly forecast sample."""
from __future__ import annotations

import math
from typing import Optional

from snorkel_insight.models.forecast import ForecastSample
from snorkel_insight.scoring.exposure import (
    EAST_COAST,
    WEST_COAST,
    directional_coefficient,
)

DEFAULT_WAVE_PERIOD = 8.0
SCORE_MIN = 0
SCORE_MAX = 100


def _gt(value: Optional[float], threshold: float) -> bool:
    return value is not None and value > threshold


def _lt(value: Optional[float], threshold: float) -> bool:
    return value is not None and value < threshold


def wind_speed_penalty(wind_speed: Optional[float]) -> float:
    if _gt(wind_speed, 10):
        return (wind_speed - 10) * 2
    return 0.0


def onshore_wind_penalty(
    wind_speed: Optional[float],
    wind_direction: Optional[float],
    region: Optional[str],
) -> float:
    if not _gt(wind_speed, 15) or wind_direction is None:
        return 0.0
    region = (region or "").lower()
    if region == WEST_COAST and 45 <= wind_direction <= 135:
        return 10.0
    if region == EAST_COAST and 225 <= wind_direction <= 315:
        return 10.0
    return 0.0


def precipitation_penalty(probability: Optional[float], amount: Optional[float]) -> float:
    if _gt(probability, 30) or _gt(amount, 0.5):
        return 30.0
    if _gt(probability, 15) or _gt(amount, 0.1):
        return 15.0
    return 0.0


def cloud_cover_penalty(cloud_cover: Optional[float]) -> float:
    if _gt(cloud_cover, 80):
        return 5.0
    if _gt(cloud_cover, 60):
        return 3.0
    return 0.0


def temperature_penalty(temperature: Optional[float]) -> float:
    if _lt(temperature, 20) or _gt(temperature, 32):
        return 15.0
    if _lt(temperature, 22) or _gt(temperature, 30):
        return 8.0
    return 0.0


def ideal_conditions_bonus(
    wave_height: float,
    wind_speed: Optional[float],
    precipitation_probability: Optional[float],
    cloud_cover: Optional[float],
) -> float:
    if (
        wave_height < 0.5
        and _lt(wind_speed, 8)
        and _lt(precipitation_probability, 10)
        and _lt(cloud_cover, 30)
    ):
        return 10.0
    return 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_suitability(sample: ForecastSample) -> int:
    """
    Score one sample for snorkeling.

    The running score starts at ``K * H^2 * T * 10`` and the adjustments are
    applied in a fixed order: wind speed, onshore wind, precipitation, cloud
    cover, temperature, ideal-conditions bonus. Missing wave height counts as
    0 and missing period as 8; any other missing variable neither penalizes
    nor qualifies for the bonus.
    """
    region = sample.location.region
    height = sample.wave_height if sample.wave_height is not None else 0.0
    period = sample.wave_period if sample.wave_period is not None else DEFAULT_WAVE_PERIOD
    k = directional_coefficient(sample.location.name, region, sample.swell_direction)

    score = k * height ** 2 * period * 10
    score -= wind_speed_penalty(sample.wind_speed)
    score -= onshore_wind_penalty(sample.wind_speed, sample.wind_direction, region)
    score -= precipitation_penalty(sample.precipitation_probability, sample.precipitation_amount)
    score -= cloud_cover_penalty(sample.cloud_cover)
    score -= temperature_penalty(sample.temperature)
    score += ideal_conditions_bonus(
        height, sample.wind_speed, sample.precipitation_probability, sample.cloud_cover
    )

    return round_half_up(min(SCORE_MAX, max(SCORE_MIN, score)))
