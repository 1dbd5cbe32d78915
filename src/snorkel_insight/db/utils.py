"""Datetime and coordinate helpers for database operations."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Tuple

from snorkel_insight.models.forecast import to_decimal


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def coordinate_window(value, epsilon) -> Tuple[Decimal, Decimal]:
    """Inclusive ``[value - epsilon, value + epsilon]`` range for a range predicate."""
    value = to_decimal(value)
    epsilon = to_decimal(epsilon)
    return value - epsilon, value + epsilon
