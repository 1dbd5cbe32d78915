"""Hourly forecast tables: plain samples and scored snorkel-site samples."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Date, DateTime, Index, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from snorkel_insight.db.models.base import Base

# NUMERIC(15, 12) keeps the configured coordinates exact on round-trip.
COORDINATE = Numeric(15, 12, asdecimal=True)


class _ForecastColumns:
    """Columns shared by both forecast tables."""

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    forecast_date: Mapped[date] = mapped_column(Date, nullable=False)
    latitude: Mapped[Decimal] = mapped_column(COORDINATE, nullable=False)
    longitude: Mapped[Decimal] = mapped_column(COORDINATE, nullable=False)
    forecast_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    wave_height: Mapped[Optional[float]] = mapped_column(Numeric(4, 2, asdecimal=False), nullable=True)
    wave_period: Mapped[Optional[float]] = mapped_column(Numeric(4, 1, asdecimal=False), nullable=True)
    wind_speed: Mapped[Optional[float]] = mapped_column(Numeric(5, 1, asdecimal=False), nullable=True)
    wind_direction: Mapped[Optional[float]] = mapped_column(Numeric(5, 1, asdecimal=False), nullable=True)
    wind_gusts: Mapped[Optional[float]] = mapped_column(Numeric(5, 1, asdecimal=False), nullable=True)
    cloud_cover: Mapped[Optional[float]] = mapped_column(Numeric(5, 1, asdecimal=False), nullable=True)
    temperature: Mapped[Optional[float]] = mapped_column(Numeric(4, 1, asdecimal=False), nullable=True)
    precipitation_probability: Mapped[Optional[float]] = mapped_column(Numeric(5, 1, asdecimal=False), nullable=True)
    precipitation_amount: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)
    ocean_current_velocity: Mapped[Optional[float]] = mapped_column(Numeric(4, 2, asdecimal=False), nullable=True)
    ocean_current_direction: Mapped[Optional[float]] = mapped_column(Numeric(5, 1, asdecimal=False), nullable=True)
    sea_level_height: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)

    ingested_at_dtz: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class WeatherForecast(_ForecastColumns, Base):
    """Hourly marine + weather sample for a monitored coordinate."""
    __tablename__ = "weather_forecast"
    __table_args__ = (
        Index("idx_weather_forecast_lat_lng", "latitude", "longitude"),
        Index("idx_weather_forecast_date", "forecast_date"),
    )


class SnorkelForecast(_ForecastColumns, Base):
    """Hourly sample for a named snorkel site, with its suitability score."""
    __tablename__ = "snorkel_forecast"
    __table_args__ = (
        Index("idx_snorkel_forecast_lat_lng", "latitude", "longitude"),
        Index("idx_snorkel_forecast_date", "forecast_date"),
        Index("idx_snorkel_forecast_site", "site_name"),
    )

    site_name: Mapped[str] = mapped_column(Text, nullable=False)
    region: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    swell_wave_direction: Mapped[Optional[float]] = mapped_column(Numeric(5, 1, asdecimal=False), nullable=True)
    suitability_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


__all__ = ["WeatherForecast", "SnorkelForecast"]
