"""Model package for snorkel_insight."""
from .base import Base
from .forecast import SnorkelForecast, WeatherForecast

__all__ = [
    "Base",
    "SnorkelForecast",
    "WeatherForecast",
]
