"""
Persistence port used by the ingestion pipeline.

The pipeline only needs a ranged delete, a chunk insert and (optionally) a
unit of work that makes one location's delete + inserts atomic. Concrete
stores subclass ``PersistencePort``; ``RecyclingPersistence`` wraps a port
factory and replaces stale connections.
"""
from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Tuple

from snorkel_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="persistence_port")

TABLE_FORECAST = "weather_forecast"
TABLE_SNORKEL = "snorkel_forecast"

DEFAULT_MAX_CONNECTION_AGE_SEC = 55 * 60
DEFAULT_MIN_REMAINING_MS = 10_000

CoordinateRange = Tuple[Decimal, Decimal]
TimeRange = Tuple[datetime, datetime]
Record = Mapping[str, Any]


class PersistenceFailure(RuntimeError):
    """Raised when the store rejects a delete or insert."""

    def __init__(self, message: str, indices: Sequence[int] = ()) -> None:
        super().__init__(message)
        self.indices = tuple(indices)


@dataclass
class InvocationContext:
    """Optional scheduler context: invocation id and remaining-time budget."""

    invocation_id: Optional[str] = None
    remaining_time_ms: Optional[Callable[[], int]] = None

    def time_left_ms(self) -> Optional[int]:
        return self.remaining_time_ms() if self.remaining_time_ms else None


class PersistencePort:
    """Interface the pipeline writes through."""

    def delete(
        self,
        table: str,
        lat_range: CoordinateRange,
        lng_range: CoordinateRange,
        timestamp_range: TimeRange,
    ) -> int:  # pragma: no cover - interface
        """Delete rows inside all three inclusive ranges; return the row count."""
        raise NotImplementedError

    def insert_many(self, table: str, records: Sequence[Record]) -> int:  # pragma: no cover - interface
        """Insert ``records``; raise PersistenceFailure carrying rejected indices."""
        raise NotImplementedError

    def count(self, table: str) -> Optional[int]:
        """Total rows in ``table``; ``None`` when the store cannot say."""
        return None

    @contextlib.contextmanager
    def unit_of_work(self) -> Iterator[None]:
        """Group the calls made inside the block into one transaction, if supported."""
        yield

    def close(self) -> None:
        return None


class RecyclingPersistence(PersistencePort):
    """
    Delegate to a port built by ``factory`` and rebuild it when it gets stale.

    A port is replaced once it is older than ``max_age_seconds``, and once
    per bound invocation when it has less than ``min_remaining_ms`` left.
    """

    def __init__(
        self,
        factory: Callable[[], PersistencePort],
        *,
        max_age_seconds: float = DEFAULT_MAX_CONNECTION_AGE_SEC,
        min_remaining_ms: int = DEFAULT_MIN_REMAINING_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self._max_age_seconds = max_age_seconds
        self._min_remaining_ms = min_remaining_ms
        self._clock = clock
        self._port: Optional[PersistencePort] = None
        self._created_at: Optional[float] = None
        self._context: Optional[InvocationContext] = None
        self._pinned: Optional[PersistencePort] = None
        self._deadline_refresh_for: Optional[InvocationContext] = None

    def bind_context(self, context: Optional[InvocationContext]) -> None:
        self._context = context

    def _near_deadline(self) -> bool:
        remaining = self._context.time_left_ms() if self._context else None
        return remaining is not None and remaining < self._min_remaining_ms

    def _is_stale(self) -> bool:
        if self._port is None or self._created_at is None:
            return True
        if self._clock() - self._created_at > self._max_age_seconds:
            return True
        # near the deadline a fresh port is built at most once per invocation
        return self._near_deadline() and self._deadline_refresh_for is not self._context

    def current(self) -> PersistencePort:
        """Return a fresh-enough delegate, creating one if needed."""
        if self._is_stale():
            invocation_id = self._context.invocation_id if self._context else None
            if self._port is not None:
                logger.info("Recycling persistence connection (invocation=%s)", invocation_id or "local")
                self._port.close()
            else:
                logger.info("Creating persistence connection (invocation=%s)", invocation_id or "local")
            self._port = self._factory()
            self._created_at = self._clock()
            if self._near_deadline():
                self._deadline_refresh_for = self._context
        else:
            logger.debug("Reusing persistence connection (age=%.1fs)", self._clock() - self._created_at)
        return self._port

    def _active(self) -> PersistencePort:
        return self._pinned or self.current()

    def delete(self, table, lat_range, lng_range, timestamp_range) -> int:
        return self._active().delete(table, lat_range, lng_range, timestamp_range)

    def insert_many(self, table, records) -> int:
        return self._active().insert_many(table, records)

    def count(self, table) -> Optional[int]:
        return self._active().count(table)

    @contextlib.contextmanager
    def unit_of_work(self) -> Iterator[None]:
        port = self.current()
        self._pinned = port
        try:
            with port.unit_of_work():
                yield
        finally:
            self._pinned = None

    def close(self) -> None:
        if self._port is not None:
            self._port.close()
        self._port = None
        self._created_at = None
