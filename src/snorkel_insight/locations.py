"""Monitored offshore grid points and named snorkel sites around Puerto Rico."""
from __future__ import annotations

from typing import Tuple

from snorkel_insight.models.forecast import Location


def _grid(*points: Tuple[str, str]) -> Tuple[Location, ...]:
    return tuple(Location(latitude=lat, longitude=lng) for lat, lng in points)


FORECAST_LOCATIONS: Tuple[Location, ...] = _grid(
    # North coast
    ("19.0000", "-66.5000"),
    ("18.9800", "-66.2000"),
    ("18.9500", "-66.8000"),
    ("18.9200", "-65.9000"),
    # Northeast
    ("18.8500", "-66.2000"),
    ("18.8000", "-65.6000"),
    ("18.7500", "-65.4000"),
    ("18.7000", "-65.9000"),
    # East
    ("18.5500", "-65.6000"),
    ("18.4500", "-65.4000"),
    ("18.3500", "-65.3000"),
    ("18.2500", "-65.2000"),
    # Southeast
    ("18.0000", "-65.5000"),
    ("17.9000", "-65.6000"),
    ("17.8000", "-65.8000"),
    ("17.7000", "-66.0000"),
    # South
    ("17.5000", "-65.9000"),
    ("17.5000", "-66.3000"),
    ("17.5000", "-66.6000"),
    ("17.5000", "-66.9000"),
    # Southwest
    ("17.6000", "-67.2000"),
    ("17.7000", "-67.1000"),
    ("17.8000", "-67.0000"),
    # West (Rincon is the second point)
    ("18.1000", "-67.2000"),
    ("18.2033340", "-67.2021048"),
    ("18.3000", "-67.2500"),
    ("18.4000", "-67.3000"),
    # Northwest
    ("18.5000", "-67.2000"),
    ("18.6000", "-67.1000"),
    ("18.7000", "-67.0000"),
    ("18.7500", "-66.8000"),
    # Nearshore and offshore extras
    ("18.4661640", "-66.0136532"),
    ("18.1708446", "-65.5100"),
    ("18.0732372", "-65.497277"),
    ("18.2000", "-67.8000"),
    ("19.0500", "-65.7000"),
    ("17.3000", "-65.5000"),
    ("17.3000", "-67.5000"),
)

# Names must match the keys of scoring.exposure.SITE_EXPOSURE.
SNORKEL_SITES: Tuple[Location, ...] = (
    Location(latitude="18.4662", longitude="-66.0883", name="Escambron", region="north"),
    Location(latitude="18.5133", longitude="-67.0978", name="Shacks Beach", region="west"),
    Location(latitude="18.4581", longitude="-67.1661", name="Crash Boat", region="west"),
    Location(latitude="18.3613", longitude="-67.2675", name="Steps Beach", region="west"),
    Location(latitude="17.9472", longitude="-66.8769", name="Gilligan's Island", region="south"),
    Location(latitude="17.9697", longitude="-67.0464", name="La Parguera", region="south"),
    Location(latitude="18.3681", longitude="-65.6389", name="Seven Seas", region="east"),
    Location(latitude="18.3308", longitude="-65.3172", name="Flamenco", region="culebra"),
    Location(latitude="18.3097", longitude="-65.3136", name="Tamarindo", region="culebra"),
    Location(latitude="18.3236", longitude="-65.3306", name="Carlos Rosario", region="culebra"),
    Location(latitude="18.0925", longitude="-65.4119", name="Blue Beach", region="vieques"),
)
