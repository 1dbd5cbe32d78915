"""
Batched fetch -> score -> replace pipeline.

Locations are split into fixed-size groups. Each group is fetched and
processed concurrently; groups run one after another with a pause in
between to stay under the upstream rate limits. Persistence goes through a
single lock, so two locations never interleave their delete + insert
sequences.
"""
from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from snorkel_insight.clients.open_meteo_client import ProviderFailure
from snorkel_insight.db.port import PersistenceFailure, PersistencePort
from snorkel_insight.db.utils import coordinate_window
from snorkel_insight.models.forecast import Location
from snorkel_insight.models.payloads import RunSummaryEnvelope
from snorkel_insight.pipeline.profiles import ForecastProfile
from snorkel_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ingest_pipeline")

DEFAULT_GROUP_SIZE = 15
DEFAULT_GROUP_PAUSE_SEC = 1.0
DEFAULT_COORDINATE_TOLERANCE = Decimal("0.0001")
DEFAULT_INSERT_CHUNK_SIZE = 168
DEFAULT_HORIZON_DAYS = 7


class ConfigurationFailure(RuntimeError):
    """Raised when the run cannot possibly succeed, e.g. no persistence port."""


@dataclass
class PipelineConfig:
    """Runtime configuration for IngestionPipeline."""

    group_size: int = DEFAULT_GROUP_SIZE
    group_pause_seconds: float = DEFAULT_GROUP_PAUSE_SEC
    coordinate_tolerance: Decimal = DEFAULT_COORDINATE_TOLERANCE
    insert_chunk_size: int = DEFAULT_INSERT_CHUNK_SIZE
    horizon_days: int = DEFAULT_HORIZON_DAYS
    timezone: str = "UTC"
    atomic_replace: bool = True
    include_snorkel_sites: bool = True


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def make_pipeline_config_from_env() -> PipelineConfig:
    """Build PipelineConfig with ``SNORKEL_*`` environment overrides."""
    return PipelineConfig(
        group_size=int(os.getenv("SNORKEL_GROUP_SIZE", DEFAULT_GROUP_SIZE)),
        group_pause_seconds=float(os.getenv("SNORKEL_GROUP_PAUSE_SEC", DEFAULT_GROUP_PAUSE_SEC)),
        coordinate_tolerance=Decimal(os.getenv("SNORKEL_COORDINATE_TOLERANCE", str(DEFAULT_COORDINATE_TOLERANCE))),
        insert_chunk_size=int(os.getenv("SNORKEL_INSERT_CHUNK_SIZE", DEFAULT_INSERT_CHUNK_SIZE)),
        horizon_days=int(os.getenv("SNORKEL_HORIZON_DAYS", DEFAULT_HORIZON_DAYS)),
        timezone=os.getenv("FORECAST_TZ", "UTC"),
        atomic_replace=_env_flag("SNORKEL_ATOMIC_REPLACE", True),
        include_snorkel_sites=_env_flag("SNORKEL_INCLUDE_SITES", True),
    )


def chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Yield consecutive slices of at most ``size`` items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


@dataclass
class LocationOutcome:
    """Result of processing one location."""

    location: Location
    succeeded: bool
    records_inserted: int = 0
    chunks_failed: int = 0
    error: Optional[str] = None


@dataclass
class RunSummary:
    """Counters aggregated over one or more pipeline runs."""

    locations_updated: int = 0
    locations_failed: int = 0
    api_calls: int = 0
    execution_time_seconds: float = 0.0
    records_inserted: int = 0
    chunks_failed: int = 0
    scored_updated: Optional[int] = None
    scored_failed: Optional[int] = None
    failures: List[str] = field(default_factory=list)

    def record(self, outcome: LocationOutcome, *, scored: bool) -> None:
        self.records_inserted += outcome.records_inserted
        self.chunks_failed += outcome.chunks_failed
        if outcome.succeeded:
            self.locations_updated += 1
        else:
            self.locations_failed += 1
            self.failures.append(f"{outcome.location.label}: {outcome.error}")
        if scored:
            if outcome.succeeded:
                self.scored_updated = (self.scored_updated or 0) + 1
            else:
                self.scored_failed = (self.scored_failed or 0) + 1

    def merge(self, other: "RunSummary") -> "RunSummary":
        def _add(a: Optional[int], b: Optional[int]) -> Optional[int]:
            if a is None and b is None:
                return None
            return (a or 0) + (b or 0)

        return RunSummary(
            locations_updated=self.locations_updated + other.locations_updated,
            locations_failed=self.locations_failed + other.locations_failed,
            api_calls=self.api_calls + other.api_calls,
            execution_time_seconds=self.execution_time_seconds + other.execution_time_seconds,
            records_inserted=self.records_inserted + other.records_inserted,
            chunks_failed=self.chunks_failed + other.chunks_failed,
            scored_updated=_add(self.scored_updated, other.scored_updated),
            scored_failed=_add(self.scored_failed, other.scored_failed),
            failures=self.failures + other.failures,
        )

    def to_envelope(self, request_id: Optional[str] = None) -> RunSummaryEnvelope:
        return RunSummaryEnvelope(
            locations_updated=self.locations_updated,
            locations_failed=self.locations_failed,
            api_calls=self.api_calls,
            execution_time_seconds=round(self.execution_time_seconds, 3),
            records_inserted=self.records_inserted,
            chunks_failed=self.chunks_failed,
            scored_updated=self.scored_updated,
            scored_failed=self.scored_failed,
            request_id=request_id,
        )


class IngestionPipeline:
    """Fetch, optionally score, and replace stored samples for a location set."""

    def __init__(
        self,
        provider,
        port: Optional[PersistencePort],
        profile: Optional[ForecastProfile] = None,
        config: Optional[PipelineConfig] = None,
        *,
        sleep: Callable[[float], Any] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        if port is None:
            raise ConfigurationFailure("No persistence port configured; cannot delete or insert")
        for method in ("delete", "insert_many"):
            if not callable(getattr(port, method, None)):
                raise ConfigurationFailure(f"Persistence port is missing '{method}'")
        self._config = config or PipelineConfig()
        if self._config.group_size < 1 or self._config.insert_chunk_size < 1:
            raise ConfigurationFailure("group_size and insert_chunk_size must be positive")
        self._provider = provider
        self._port = port
        self._profile = profile or ForecastProfile()
        self._sleep = sleep
        self._clock = clock
        self._persist_lock: Optional[asyncio.Lock] = None

    async def run(
        self,
        locations: Sequence[Location],
        horizon_days: Optional[int] = None,
    ) -> RunSummary:
        """Process every location; per-location failures are counted, never raised."""
        horizon = horizon_days or self._config.horizon_days
        calls_per_fetch = getattr(self._provider, "calls_per_fetch", 2)
        self._persist_lock = asyncio.Lock()
        start = self._clock()
        summary = RunSummary()
        if self._profile.scored:
            summary.scored_updated = 0
            summary.scored_failed = 0

        groups = list(chunked(list(locations), self._config.group_size))
        logger.info(
            "Starting %s run: %d locations in %d groups (horizon=%d days)",
            self._profile.name,
            len(locations),
            len(groups),
            horizon,
        )
        for index, group in enumerate(groups, start=1):
            outcomes = await asyncio.gather(
                *(self._process_location(location, horizon) for location in group)
            )
            summary.api_calls += calls_per_fetch * len(group)
            for outcome in outcomes:
                summary.record(outcome, scored=self._profile.scored)
            logger.info(
                "Group %d/%d settled: %d ok, %d failed",
                index,
                len(groups),
                sum(1 for o in outcomes if o.succeeded),
                sum(1 for o in outcomes if not o.succeeded),
            )
            if index < len(groups) and self._config.group_pause_seconds > 0:
                await self._sleep(self._config.group_pause_seconds)

        summary.execution_time_seconds = self._clock() - start
        return summary

    async def _process_location(self, location: Location, horizon_days: int) -> LocationOutcome:
        """Fetch, score and persist one location, isolating any failure to it."""
        try:
            batch = await self._provider.fetch_forecast(location, horizon_days)
            samples = self._profile.prepare(batch)
            if not samples:
                logger.warning("No forecast samples returned for %s; nothing to store", location.label)
                return LocationOutcome(location=location, succeeded=True)
            records = [self._profile.build_record(sample) for sample in samples]
            async with self._persist_lock:
                inserted, chunks_failed = await asyncio.to_thread(
                    self._replace, location, batch.window, records
                )
        except ConfigurationFailure:
            raise
        except ProviderFailure as exc:
            logger.error("Fetch failed for %s: %s", location.label, exc.cause)
            return LocationOutcome(location=location, succeeded=False, error=exc.cause)
        except PersistenceFailure as exc:
            logger.error("Persistence failed for %s: %s", location.label, exc)
            return LocationOutcome(location=location, succeeded=False, error=str(exc))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error processing %s", location.label)
            return LocationOutcome(location=location, succeeded=False, error=repr(exc))

        if chunks_failed:
            return LocationOutcome(
                location=location,
                succeeded=False,
                records_inserted=inserted,
                chunks_failed=chunks_failed,
                error=f"{chunks_failed} insert chunk(s) rejected",
            )
        logger.debug("Stored %d samples for %s", inserted, location.label)
        return LocationOutcome(location=location, succeeded=True, records_inserted=inserted)

    def _replace(
        self,
        location: Location,
        window: Tuple[Any, Any],
        records: List[Dict[str, Any]],
    ) -> Tuple[int, int]:
        """Delete the overlapping stored window, then insert ``records`` in chunks."""
        table = self._profile.table
        tolerance = self._config.coordinate_tolerance
        lat_range = coordinate_window(location.latitude, tolerance)
        lng_range = coordinate_window(location.longitude, tolerance)
        chunks = list(chunked(records, self._config.insert_chunk_size))

        if self._config.atomic_replace:
            with self._port.unit_of_work():
                deleted = self._port.delete(table, lat_range, lng_range, window)
                inserted = sum(self._port.insert_many(table, chunk) for chunk in chunks)
            logger.debug("Replaced %d rows with %d for %s", deleted, inserted, location.label)
            return inserted, 0

        deleted = self._port.delete(table, lat_range, lng_range, window)
        inserted = 0
        failed = 0
        for chunk_index, chunk in enumerate(chunks):
            try:
                inserted += self._port.insert_many(table, chunk)
            except PersistenceFailure as exc:
                failed += 1
                logger.error(
                    "Insert chunk %d (%d rows) rejected for %s: %s",
                    chunk_index,
                    len(chunk),
                    location.label,
                    exc,
                )
        logger.debug("Deleted %d rows and inserted %d for %s", deleted, inserted, location.label)
        return inserted, failed
