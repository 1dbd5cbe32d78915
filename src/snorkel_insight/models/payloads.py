"""Pydantic schemas for upstream Open-Meteo payloads and the run result envelope."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

TimeValue = Union[int, str]
Series = Optional[List[Optional[float]]]


class _HourlyBlock(BaseModel):
    """Shared shape of an ``hourly`` block: one time axis plus parallel arrays."""

    model_config = ConfigDict(extra="ignore")

    time: List[TimeValue]


class MarineHourly(_HourlyBlock):
    wave_height: Series = None
    wave_period: Series = None
    swell_wave_direction: Series = None
    ocean_current_velocity: Series = None
    ocean_current_direction: Series = None
    sea_level_height_msl: Series = None


class WeatherHourly(_HourlyBlock):
    wind_speed_10m: Series = None
    wind_direction_10m: Series = None
    wind_gusts_10m: Series = None
    cloud_cover: Series = None
    temperature_2m: Series = None
    precipitation_probability: Series = None
    precipitation: Series = None


class _ProviderPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    utc_offset_seconds: int = 0
    timezone: Optional[str] = None


class MarinePayload(_ProviderPayload):
    """Normalized marine-api.open-meteo.com response."""

    hourly: MarineHourly


class WeatherPayload(_ProviderPayload):
    """Normalized api.open-meteo.com forecast response."""

    hourly: WeatherHourly


def validate_marine_payload(raw: Dict[str, Any]) -> MarinePayload:
    return MarinePayload.model_validate(raw)


def validate_weather_payload(raw: Dict[str, Any]) -> WeatherPayload:
    return WeatherPayload.model_validate(raw)


class _Envelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunSummaryEnvelope(_Envelope):
    """Aggregated counters exposed in the run result."""

    locations_updated: int
    locations_failed: int
    api_calls: int
    execution_time_seconds: float
    records_inserted: int = 0
    chunks_failed: int = 0
    scored_updated: Optional[int] = None
    scored_failed: Optional[int] = None
    request_id: Optional[str] = None


class RunResult(_Envelope):
    """``{success, summary?, error?}`` result of one run."""

    success: bool
    summary: Optional[RunSummaryEnvelope] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "RunResult":
        if self.success and self.summary is None:
            raise ValueError("a successful run must carry a summary")
        if not self.success and not self.error:
            raise ValueError("a failed run must carry an error")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_response(self) -> Dict[str, Any]:
        """HTTP-style wrapper for schedulers that expect a status code and JSON body."""
        return {
            "statusCode": 200 if self.success else 500,
            "body": self.model_dump_json(by_alias=True, exclude_none=True),
        }
