"""Site profiles: which table a location set writes to and how its records look."""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Tuple

from snorkel_insight.db.port import TABLE_FORECAST, TABLE_SNORKEL
from snorkel_insight.models.forecast import ForecastBatch, ForecastSample
from snorkel_insight.scoring.suitability import score_suitability


def _base_record(sample: ForecastSample) -> Dict[str, Any]:
    return {
        "forecast_date": sample.forecast_date,
        "latitude": sample.location.latitude,
        "longitude": sample.location.longitude,
        "forecast_timestamp": sample.timestamp,
        "wave_height": sample.wave_height,
        "wave_period": sample.wave_period,
        "wind_speed": sample.wind_speed,
        "wind_direction": sample.wind_direction,
        "wind_gusts": sample.wind_gusts,
        "cloud_cover": sample.cloud_cover,
        "temperature": sample.temperature,
        "precipitation_probability": sample.precipitation_probability,
        "precipitation_amount": sample.precipitation_amount,
        "ocean_current_velocity": sample.ocean_current_velocity,
        "ocean_current_direction": sample.ocean_current_direction,
        "sea_level_height": sample.sea_level_height,
    }


class ForecastProfile:
    """Plain forecast samples for the coordinate grid."""

    name = "forecast"
    table = TABLE_FORECAST
    scored = False

    def prepare(self, batch: ForecastBatch) -> Tuple[ForecastSample, ...]:
        return batch.samples

    def build_record(self, sample: ForecastSample) -> Dict[str, Any]:
        return _base_record(sample)


class SnorkelProfile(ForecastProfile):
    """Named snorkel sites: samples are scored and carry site metadata."""

    name = "snorkel"
    table = TABLE_SNORKEL
    scored = True

    def prepare(self, batch: ForecastBatch) -> Tuple[ForecastSample, ...]:
        return tuple(
            replace(sample, suitability_score=score_suitability(sample))
            for sample in batch.samples
        )

    def build_record(self, sample: ForecastSample) -> Dict[str, Any]:
        record = _base_record(sample)
        record.update(
            site_name=sample.location.name,
            region=sample.location.region,
            swell_wave_direction=sample.swell_direction,
            suitability_score=sample.suitability_score,
        )
        return record
