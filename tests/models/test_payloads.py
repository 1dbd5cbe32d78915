import json

import pytest
from pydantic import ValidationError

from snorkel_insight.models.payloads import (
    RunResult,
    RunSummaryEnvelope,
    validate_marine_payload,
    validate_weather_payload,
)


def test_marine_payload_ignores_unknown_fields_and_keeps_nulls():
    payload = validate_marine_payload(
        {
            "generationtime_ms": 0.2,
            "utc_offset_seconds": -14400,
            "hourly": {
                "time": [1717200000, 1717203600],
                "wave_height": [0.4, None],
                "unknown_var": [1, 2],
            },
        }
    )
    assert payload.utc_offset_seconds == -14400
    assert payload.hourly.wave_height == [0.4, None]
    assert payload.hourly.swell_wave_direction is None


def test_weather_payload_accepts_iso_time_axis():
    payload = validate_weather_payload({"hourly": {"time": ["2024-06-01T00:00"], "cloud_cover": [10]}})
    assert payload.hourly.time == ["2024-06-01T00:00"]
    assert payload.hourly.cloud_cover == [10.0]


def test_payload_without_hourly_block_is_rejected():
    with pytest.raises(ValidationError):
        validate_weather_payload({"latitude": 18.0})


def test_summary_envelope_serializes_camel_case():
    envelope = RunSummaryEnvelope(
        locations_updated=10,
        locations_failed=2,
        api_calls=24,
        execution_time_seconds=3.25,
    )
    body = RunResult(success=True, summary=envelope).to_dict()
    assert body == {
        "success": True,
        "summary": {
            "locationsUpdated": 10,
            "locationsFailed": 2,
            "apiCalls": 24,
            "executionTimeSeconds": 3.25,
            "recordsInserted": 0,
            "chunksFailed": 0,
        },
    }


def test_success_response_has_status_200():
    envelope = RunSummaryEnvelope(locations_updated=1, locations_failed=0, api_calls=2, execution_time_seconds=0.1)
    response = RunResult(success=True, summary=envelope).to_response()
    assert response["statusCode"] == 200
    assert json.loads(response["body"])["summary"]["apiCalls"] == 2


def test_result_shape_is_enforced():
    with pytest.raises(ValidationError):
        RunResult(success=True)
    with pytest.raises(ValidationError):
        RunResult(success=False)
