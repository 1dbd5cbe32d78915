"""Provider adapter for the Open-Meteo marine and weather forecast APIs."""
from __future__ import annotations

import asyncio
import datetime as dt
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

import httpx
from pydantic import ValidationError

from snorkel_insight.clients.http_session import configure_client, is_retryable
from snorkel_insight.models.forecast import ForecastBatch, ForecastSample, Location
from snorkel_insight.models.payloads import (
    MarinePayload,
    WeatherPayload,
    validate_marine_payload,
    validate_weather_payload,
)
from snorkel_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="open_meteo_client")

OPEN_METEO_MARINE_URL = "https://marine-api.open-meteo.com/v1/marine"
OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_TIMEOUT = 15
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF = 0.5
DEFAULT_HORIZON_DAYS = 7
DEFAULT_TZ = "UTC"
DEFAULT_USER_AGENT = "snorkel-insight/open-meteo"

MARINE_HOURLY_VARS = [
    "wave_height",
    "wave_period",
    "swell_wave_direction",
    "ocean_current_velocity",
    "ocean_current_direction",
    "sea_level_height_msl",
]
WEATHER_HOURLY_VARS = [
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "cloud_cover",
    "temperature_2m",
    "precipitation_probability",
    "precipitation",
]


class ProviderFailure(RuntimeError):
    """Raised when either upstream request fails or returns malformed data."""

    def __init__(self, location: Location, cause: str) -> None:
        super().__init__(f"Forecast fetch failed for {location.label}: {cause}")
        self.location = location
        self.cause = cause


@dataclass
class OpenMeteoClientConfig:
    """Configuration for OpenMeteoClient."""

    marine_url: str = OPEN_METEO_MARINE_URL
    weather_url: str = OPEN_METEO_WEATHER_URL
    marine_api_key: Optional[str] = None
    weather_api_key: Optional[str] = None
    timeout_seconds: int = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_BACKOFF
    user_agent: str = DEFAULT_USER_AGENT


def _decode_time(value: Any, utc_offset_seconds: int) -> dt.datetime:
    """
    Turn one Open-Meteo time value into an aware UTC datetime.

    ``timeformat=unixtime`` yields epoch seconds (already GMT+0); ISO strings
    are local wall-clock times at ``utc_offset_seconds``.
    """
    if isinstance(value, int):
        return dt.datetime.fromtimestamp(value, tz=dt.timezone.utc)
    parsed = dt.datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        return parsed.astimezone(dt.timezone.utc)
    return (parsed - dt.timedelta(seconds=utc_offset_seconds)).replace(tzinfo=dt.timezone.utc)


def _list_lookup(values: Optional[Sequence[Optional[float]]], idx: int) -> Optional[float]:
    """Safely read list-style values from the API payload."""
    if values is None or idx >= len(values):
        return None
    return values[idx]


class OpenMeteoClient:
    """Fetches the marine + weather pair for a location and merges them into samples."""

    calls_per_fetch = 2

    def __init__(
        self,
        config: OpenMeteoClientConfig,
        client: Optional[httpx.AsyncClient] = None,
        *,
        timezone: str = DEFAULT_TZ,
    ) -> None:
        self._config = config
        self._timezone = timezone
        self._zone = ZoneInfo(timezone)
        self._owns_client = client is None
        self._client = client or configure_client(
            headers={"User-Agent": config.user_agent},
            timeout_seconds=config.timeout_seconds,
            retries=config.retries,
        )

    async def __aenter__(self) -> "OpenMeteoClient":
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # HTTP fetchers                                                      #
    # ------------------------------------------------------------------ #
    async def fetch_marine(self, location: Location, horizon_days: int) -> MarinePayload:
        """Fetch hourly wave, current and sea-level variables."""
        params = self._params(location, MARINE_HOURLY_VARS, horizon_days, self._config.marine_api_key)
        raw = await self._get(self._config.marine_url, params, location=location, source="marine")
        return self._validate(validate_marine_payload, raw, location, "marine")

    async def fetch_weather(self, location: Location, horizon_days: int) -> WeatherPayload:
        """Fetch hourly wind, cloud, temperature and precipitation variables."""
        params = self._params(location, WEATHER_HOURLY_VARS, horizon_days, self._config.weather_api_key)
        raw = await self._get(self._config.weather_url, params, location=location, source="weather")
        return self._validate(validate_weather_payload, raw, location, "weather")

    async def fetch_forecast(
        self,
        location: Location,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
    ) -> ForecastBatch:
        """
        Fetch both providers concurrently and merge them into one batch.

        Both requests must succeed; the first failure is raised as
        ``ProviderFailure`` once the sibling request has settled.
        """
        marine, weather = await asyncio.gather(
            self.fetch_marine(location, horizon_days),
            self.fetch_weather(location, horizon_days),
            return_exceptions=True,
        )
        for result in (marine, weather):
            if isinstance(result, ProviderFailure):
                raise result
            if isinstance(result, BaseException):
                raise ProviderFailure(location, f"unexpected error: {result!r}") from result
        try:
            return self.build_batch(location, marine, weather)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ProviderFailure(location, f"malformed time axis: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Sample builders                                                    #
    # ------------------------------------------------------------------ #
    def build_batch(
        self,
        location: Location,
        marine: MarinePayload,
        weather: WeatherPayload,
    ) -> ForecastBatch:
        """Merge the two hourly blocks by index into ForecastSamples."""
        mh = marine.hourly
        wh = weather.hourly
        count = min(len(mh.time), len(wh.time))
        if len(mh.time) != len(wh.time):
            logger.warning(
                "Marine/weather length mismatch for %s (%d vs %d); truncating to %d",
                location.label,
                len(mh.time),
                len(wh.time),
                count,
            )

        samples: List[ForecastSample] = []
        for idx in range(count):
            timestamp = _decode_time(wh.time[idx], weather.utc_offset_seconds)
            if idx == 0 and _decode_time(mh.time[0], marine.utc_offset_seconds) != timestamp:
                logger.warning(
                    "Marine/weather time grids start at different instants for %s; aligning by index",
                    location.label,
                )
            samples.append(
                ForecastSample(
                    location=location,
                    timestamp=timestamp,
                    forecast_date=timestamp.astimezone(self._zone).date(),
                    wave_height=_list_lookup(mh.wave_height, idx),
                    wave_period=_list_lookup(mh.wave_period, idx),
                    swell_direction=_list_lookup(mh.swell_wave_direction, idx),
                    ocean_current_velocity=_list_lookup(mh.ocean_current_velocity, idx),
                    ocean_current_direction=_list_lookup(mh.ocean_current_direction, idx),
                    sea_level_height=_list_lookup(mh.sea_level_height_msl, idx),
                    wind_speed=_list_lookup(wh.wind_speed_10m, idx),
                    wind_direction=_list_lookup(wh.wind_direction_10m, idx),
                    wind_gusts=_list_lookup(wh.wind_gusts_10m, idx),
                    cloud_cover=_list_lookup(wh.cloud_cover, idx),
                    temperature=_list_lookup(wh.temperature_2m, idx),
                    precipitation_probability=_list_lookup(wh.precipitation_probability, idx),
                    precipitation_amount=_list_lookup(wh.precipitation, idx),
                )
            )
        return ForecastBatch(location=location, samples=tuple(samples))

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #
    def _params(
        self,
        location: Location,
        hourly_vars: List[str],
        horizon_days: int,
        api_key: Optional[str],
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "latitude": str(location.latitude),
            "longitude": str(location.longitude),
            "hourly": ",".join(hourly_vars),
            "forecast_days": max(1, horizon_days),
            "timezone": self._timezone,
            "timeformat": "unixtime",
        }
        if api_key:
            params["apikey"] = api_key
        return params

    async def _get(
        self,
        url: str,
        params: Dict[str, Any],
        *,
        location: Location,
        source: str,
    ) -> Dict[str, Any]:
        retries = self._config.retries
        for attempt in range(retries + 1):
            try:
                resp = await self._client.get(url, params=params)
                if is_retryable(resp.status_code) and attempt < retries:
                    logger.debug(
                        "Open-Meteo %s returned %s for %s; retrying",
                        source,
                        resp.status_code,
                        location.label,
                    )
                    await asyncio.sleep(self._config.retry_backoff_seconds * (2 ** attempt))
                    continue
                resp.raise_for_status()
                return resp.json()
            except httpx.HTTPStatusError as exc:
                logger.error("Open-Meteo %s request failed: %s", source, exc)
                raise ProviderFailure(location, f"{source} HTTP {exc.response.status_code}") from exc
            except httpx.TransportError as exc:
                if attempt < retries:
                    await asyncio.sleep(self._config.retry_backoff_seconds * (2 ** attempt))
                    continue
                logger.error("Open-Meteo %s request failed: %r", source, exc)
                raise ProviderFailure(location, f"{source} transport error: {exc!r}") from exc
            except httpx.HTTPError as exc:
                raise ProviderFailure(location, f"{source} request error: {exc!r}") from exc
            except ValueError as exc:
                raise ProviderFailure(location, f"{source} response is not JSON") from exc
        raise ProviderFailure(location, f"{source} retries exhausted")  # pragma: no cover

    @staticmethod
    def _validate(validator, raw: Dict[str, Any], location: Location, source: str):
        try:
            return validator(raw)
        except ValidationError as exc:
            raise ProviderFailure(
                location, f"malformed {source} payload ({exc.error_count()} errors)"
            ) from exc


def make_open_meteo_client_from_env(
    client: Optional[httpx.AsyncClient] = None,
    *,
    timezone: Optional[str] = None,
) -> OpenMeteoClient:
    """Convenience factory using environment overrides."""
    config = OpenMeteoClientConfig(
        marine_url=os.getenv("OPEN_METEO_MARINE_URL", OPEN_METEO_MARINE_URL),
        weather_url=os.getenv("OPEN_METEO_WEATHER_URL", OPEN_METEO_WEATHER_URL),
        marine_api_key=os.getenv("MARINE_API_KEY") or None,
        weather_api_key=os.getenv("WEATHER_API_KEY") or None,
        timeout_seconds=int(os.getenv("OPEN_METEO_TIMEOUT_SEC", DEFAULT_TIMEOUT)),
        retries=int(os.getenv("OPEN_METEO_RETRIES", DEFAULT_RETRIES)),
        retry_backoff_seconds=float(os.getenv("OPEN_METEO_RETRY_BACKOFF", DEFAULT_BACKOFF)),
    )
    return OpenMeteoClient(
        config=config,
        client=client,
        timezone=timezone or os.getenv("FORECAST_TZ", DEFAULT_TZ),
    )
