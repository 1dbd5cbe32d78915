"""Core value types shared by the provider adapter, scoring engine and pipeline."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple


def to_decimal(value) -> Decimal:
    """Convert a coordinate to Decimal without picking up binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


@dataclass(frozen=True)
class Location:
    """A monitored point; ``name``/``region`` are only set for scored sites."""

    latitude: Decimal
    longitude: Decimal
    name: Optional[str] = None
    region: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "latitude", to_decimal(self.latitude))
        object.__setattr__(self, "longitude", to_decimal(self.longitude))

    @property
    def label(self) -> str:
        coords = f"{self.latitude},{self.longitude}"
        return f"{self.name} ({coords})" if self.name else coords


@dataclass(frozen=True)
class ForecastSample:
    """
    One hourly observation for one location.

    Every variable is optional; a missing provider value stays ``None``.
    ``suitability_score`` is only populated for scored sites.
    """

    location: Location
    timestamp: dt.datetime
    forecast_date: dt.date
    wave_height: Optional[float] = None
    wave_period: Optional[float] = None
    swell_direction: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    wind_gusts: Optional[float] = None
    cloud_cover: Optional[float] = None
    temperature: Optional[float] = None
    precipitation_probability: Optional[float] = None
    precipitation_amount: Optional[float] = None
    ocean_current_velocity: Optional[float] = None
    ocean_current_direction: Optional[float] = None
    sea_level_height: Optional[float] = None
    suitability_score: Optional[int] = None

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError("ForecastSample.timestamp must be timezone-aware")


@dataclass
class ForecastBatch:
    """Samples for one location over one fetch horizon, ordered by timestamp."""

    location: Location
    samples: Tuple[ForecastSample, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def window(self) -> Tuple[dt.datetime, dt.datetime]:
        """First and last sample timestamps (inclusive)."""
        if not self.samples:
            raise ValueError(f"Empty forecast batch for {self.location.label}")
        return self.samples[0].timestamp, self.samples[-1].timestamp
