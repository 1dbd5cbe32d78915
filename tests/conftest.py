"""Shared fixtures and fakes for unit tests.

Logging is routed to a null handler so tests don't write to pytest's closed
streams, and the module-level ``setup_logging`` call in the controller is
short-circuited.

Classes:
    _NullHandler: No-op logging handler for silencing loggers during tests.
    FakePersistence: In-memory ``PersistencePort`` with the same range
        delete semantics as the SQL store; records every call.
    FakeProvider: Async provider returning canned batches or failures.

Helpers:
    make_sample / make_batch: build ForecastSamples on an hourly grid.
"""
import contextlib
import copy
import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from snorkel_insight.clients.open_meteo_client import ProviderFailure
from snorkel_insight.db.port import PersistenceFailure, PersistencePort
from snorkel_insight.models.forecast import ForecastBatch, ForecastSample, Location


# ---------------------------------------------------------------------------
#
# ---------------------------------------------------------------------------

class _NullHandler(logging.Handler):
    """Configure logging so tests don't try writing to pytest's closed streams."""

    def emit(self, record):  # pragma: no cover
        """Ignore log records to keep test output clean."""
        pass


_null_handler = _NullHandler()
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
root_logger.handlers = [_null_handler]
root_logger._snorkel_insight_configured = True  # type: ignore[attr-defined]

logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Sample builders
# ---------------------------------------------------------------------------

START = dt.datetime(2024, 6, 1, tzinfo=dt.timezone.utc)


def make_sample(location: Location, hour: int = 0, **values: Any) -> ForecastSample:
    ts = START + dt.timedelta(hours=hour)
    return ForecastSample(location=location, timestamp=ts, forecast_date=ts.date(), **values)


def make_batch(location: Location, hours: int = 3, **values: Any) -> ForecastBatch:
    return ForecastBatch(
        location=location,
        samples=tuple(make_sample(location, hour, **values) for hour in range(hours)),
    )


# ---------------------------------------------------------------------------
# In-memory persistence port
# ---------------------------------------------------------------------------


@dataclass
class FakePersistence(PersistencePort):
    """Stores records per table; optionally rejects chosen insert calls."""

    tables: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    calls: List[tuple] = field(default_factory=list)
    fail_insert_calls: set = field(default_factory=set)
    fail_delete: bool = False
    closed: bool = False
    _insert_calls: int = 0

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def delete(self, table, lat_range, lng_range, timestamp_range) -> int:
        self.calls.append(("delete", table, lat_range, lng_range, timestamp_range))
        if self.fail_delete:
            raise PersistenceFailure("delete rejected")
        keep, removed = [], 0
        for row in self.rows(table):
            if (
                lat_range[0] <= row["latitude"] <= lat_range[1]
                and lng_range[0] <= row["longitude"] <= lng_range[1]
                and timestamp_range[0] <= row["forecast_timestamp"] <= timestamp_range[1]
            ):
                removed += 1
            else:
                keep.append(row)
        self.tables[table] = keep
        return removed

    def insert_many(self, table, records) -> int:
        call_index = self._insert_calls
        self._insert_calls += 1
        self.calls.append(("insert", table, len(records)))
        if call_index in self.fail_insert_calls:
            raise PersistenceFailure("chunk rejected", indices=range(len(records)))
        self.rows(table).extend(dict(r) for r in records)
        return len(records)

    def count(self, table) -> Optional[int]:
        return len(self.rows(table))

    @contextlib.contextmanager
    def unit_of_work(self):
        self.calls.append(("begin",))
        snapshot = copy.deepcopy(self.tables)
        try:
            yield
        except Exception:
            self.tables = snapshot
            self.calls.append(("rollback",))
            raise
        self.calls.append(("commit",))

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fake provider
# ---------------------------------------------------------------------------


class FakeProvider:
    """Returns ``make_batch`` results; locations listed in ``failing`` raise."""

    calls_per_fetch = 2

    def __init__(self, hours: int = 3, failing=(), values: Optional[Dict[str, Any]] = None):
        self.hours = hours
        self.failing = {(loc.latitude, loc.longitude) for loc in failing}
        self.values = values or {}
        self.fetched: List[Location] = []
        self.closed = False

    async def fetch_forecast(self, location: Location, horizon_days: int) -> ForecastBatch:
        self.fetched.append(location)
        if (location.latitude, location.longitude) in self.failing:
            raise ProviderFailure(location, "marine HTTP 503")
        return make_batch(location, hours=self.hours, **self.values)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *_exc):
        self.closed = True


@pytest.fixture
def fake_port():
    return FakePersistence()


@pytest.fixture
def locations():
    return [
        Location(latitude=Decimal("18.0000"), longitude=Decimal("-66.0000")),
        Location(latitude=Decimal("18.5000"), longitude=Decimal("-66.5000")),
        Location(latitude=Decimal("17.5000"), longitude=Decimal("-67.0000")),
    ]


async def no_sleep(_seconds):
    return None
