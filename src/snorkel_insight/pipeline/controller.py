"""
Run controller: the programmatic entry point invoked by the scheduler.

One run updates the plain forecast grid and then, when enabled, the scored
snorkel sites. The two summaries are merged into a single result envelope.
Any exception escaping the run itself becomes a failure envelope; the
controller never raises.
"""
from __future__ import annotations

import asyncio
import os
import time
from typing import Callable, Dict, Optional, Sequence

from snorkel_insight.clients.open_meteo_client import make_open_meteo_client_from_env
from snorkel_insight.db.ops_forecast import make_persistence_from_env
from snorkel_insight.db.port import (
    TABLE_FORECAST,
    TABLE_SNORKEL,
    InvocationContext,
    PersistencePort,
    RecyclingPersistence,
)
from snorkel_insight.db.session import make_engine
from snorkel_insight.locations import FORECAST_LOCATIONS, SNORKEL_SITES
from snorkel_insight.models.forecast import Location
from snorkel_insight.models.payloads import RunResult
from snorkel_insight.pipeline.ingest import (
    ConfigurationFailure,
    IngestionPipeline,
    PipelineConfig,
    make_pipeline_config_from_env,
)
from snorkel_insight.pipeline.profiles import ForecastProfile, SnorkelProfile
from snorkel_insight.utils.logging_utils import get_tagged_logger, setup_logging
from snorkel_insight.utils.run_logger import RunLogger

setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
logger = get_tagged_logger(__name__, tag="run_controller")

RunLogCallback = Callable[[RunResult, Optional[InvocationContext]], None]


class RunController:
    """Drive the ingestion pipeline over the configured location sets."""

    def __init__(
        self,
        provider_factory: Callable[[], object],
        port: Optional[PersistencePort],
        config: Optional[PipelineConfig] = None,
        *,
        forecast_locations: Sequence[Location] = FORECAST_LOCATIONS,
        snorkel_sites: Sequence[Location] = SNORKEL_SITES,
        run_logger: Optional[RunLogCallback] = None,
        sleep=asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._provider_factory = provider_factory
        self._port = port
        self._config = config or PipelineConfig()
        self._forecast_locations = tuple(forecast_locations)
        self._snorkel_sites = tuple(snorkel_sites)
        self._run_logger = run_logger
        self._sleep = sleep
        self._clock = clock

    async def _count_records(self, stage: str) -> None:
        """Log total stored rows per table; count failures are ignored."""
        for table in (TABLE_FORECAST, TABLE_SNORKEL):
            try:
                total = await asyncio.to_thread(self._port.count, table)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Could not count %s records %s the run: %s", table, stage, exc)
                continue
            if total is not None:
                logger.info("Total %s records %s the run: %d", table, stage, total)

    def _pipeline(self, provider, profile: ForecastProfile) -> IngestionPipeline:
        return IngestionPipeline(
            provider,
            self._port,
            profile,
            self._config,
            sleep=self._sleep,
            clock=self._clock,
        )

    async def run_async(self, context: Optional[InvocationContext] = None) -> RunResult:
        request_id = context.invocation_id if context else None
        start = self._clock()
        try:
            if self._port is None:
                raise ConfigurationFailure("No persistence port configured; cannot delete or insert")
            if isinstance(self._port, RecyclingPersistence):
                self._port.bind_context(context)
            remaining = context.time_left_ms() if context else None
            logger.info(
                "Starting forecast update (request=%s, remaining=%s)",
                request_id or "local",
                f"{remaining}ms" if remaining is not None else "N/A",
            )
            await self._count_records("before")

            async with self._provider_factory() as provider:
                summary = await self._pipeline(provider, ForecastProfile()).run(self._forecast_locations)
                if self._config.include_snorkel_sites and self._snorkel_sites:
                    scored = await self._pipeline(provider, SnorkelProfile()).run(self._snorkel_sites)
                    summary = summary.merge(scored)

            summary.execution_time_seconds = self._clock() - start
            await self._count_records("after")
            logger.info(
                "Forecast update finished: %d updated, %d failed, %d API calls in %.2fs",
                summary.locations_updated,
                summary.locations_failed,
                summary.api_calls,
                summary.execution_time_seconds,
            )
            if summary.failures:
                logger.warning("Failed locations: %s", "; ".join(summary.failures))
            result = RunResult(success=True, summary=summary.to_envelope(request_id))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Forecast update failed")
            result = RunResult(success=False, error=str(exc) or exc.__class__.__name__)

        if self._run_logger is not None:
            try:
                self._run_logger(result, context)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Run logger raised: %s", exc)
        return result

    def run(self, context: Optional[InvocationContext] = None) -> RunResult:
        """Blocking wrapper around ``run_async`` for schedulers without an event loop."""
        return asyncio.run(self.run_async(context))

    def close(self) -> None:
        """Release the persistence port and the run log engine."""
        if self._port is not None:
            self._port.close()
        close_run_logger = getattr(self._run_logger, "close", None)
        if callable(close_run_logger):
            close_run_logger()


def make_run_controller_from_env() -> RunController:
    """Wire the Open-Meteo client, a recycling warehouse port and the run log from env."""
    config = make_pipeline_config_from_env()
    port = RecyclingPersistence(make_persistence_from_env)
    run_logger = None
    if os.getenv("SNORKEL_RUN_LOG_ENABLED", "true").lower() in ("1", "true", "yes"):
        run_logger = RunLogger(make_engine())
    return RunController(
        lambda: make_open_meteo_client_from_env(timezone=config.timezone),
        port,
        config,
        run_logger=run_logger,
    )


def update_forecasts(context: Optional[InvocationContext] = None) -> Dict[str, object]:
    """
    Run one forecast update and return the result envelope as a dict.

    The controller is wired per call and every connection it opened is
    released before returning. Long-lived workers that want warm reuse (and
    the recycling cutoffs) should hold a ``RunController`` and call ``run``.
    """
    try:
        controller = make_run_controller_from_env()
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Could not configure the forecast update")
        return RunResult(success=False, error=str(exc) or exc.__class__.__name__).to_dict()
    try:
        return controller.run(context).to_dict()
    finally:
        try:
            controller.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Failed to release forecast update connections: %s", exc)
