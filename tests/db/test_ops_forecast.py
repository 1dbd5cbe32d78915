from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool

from snorkel_insight.db.bootstrap import ensure_tables
from snorkel_insight.db.ops_forecast import SqlAlchemyPersistence, make_persistence_from_env
from snorkel_insight.db.port import TABLE_FORECAST, TABLE_SNORKEL, PersistenceFailure
from snorkel_insight.db.session import get_session_factory, make_engine
from snorkel_insight.db.utils import coordinate_window

START = datetime(2024, 6, 1, tzinfo=timezone.utc)
TOL = Decimal("0.0001")


def _engine():
    return make_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def store():
    engine = _engine()
    ensure_tables(engine)
    port = SqlAlchemyPersistence(get_session_factory(engine), engine=engine)
    yield port
    port.close()


def _record(lat="18.0", lng="-66.0", hour=0, **extra):
    ts = START + timedelta(hours=hour)
    record = {
        "forecast_date": ts.date(),
        "latitude": Decimal(lat),
        "longitude": Decimal(lng),
        "forecast_timestamp": ts,
        "wave_height": 0.3,
        "wave_period": 8.0,
        "wind_speed": 5.0,
        "wind_direction": 90.0,
        "wind_gusts": None,
        "cloud_cover": 10.0,
        "temperature": 27.0,
        "precipitation_probability": 5.0,
        "precipitation_amount": 0.0,
        "ocean_current_velocity": None,
        "ocean_current_direction": None,
        "sea_level_height": None,
    }
    record.update(extra)
    return record


def _delete(port, table, lat, lng, first, last):
    return port.delete(
        table,
        coordinate_window(Decimal(lat), TOL),
        coordinate_window(Decimal(lng), TOL),
        (START + timedelta(hours=first), START + timedelta(hours=last)),
    )


def test_insert_many_and_count(store):
    assert store.count(TABLE_FORECAST) == 0
    assert store.insert_many(TABLE_FORECAST, [_record(hour=h) for h in range(5)]) == 5
    assert store.count(TABLE_FORECAST) == 5


def test_insert_many_with_no_records_is_noop(store):
    assert store.insert_many(TABLE_FORECAST, []) == 0


def test_delete_only_touches_matching_window(store):
    store.insert_many(TABLE_FORECAST, [_record(hour=h) for h in range(5)])
    store.insert_many(TABLE_FORECAST, [_record(lat="18.5", hour=h) for h in range(5)])

    deleted = _delete(store, TABLE_FORECAST, "18.0", "-66.0", 1, 3)

    assert deleted == 3
    assert store.count(TABLE_FORECAST) == 7


def test_delete_matches_coordinates_within_tolerance(store):
    store.insert_many(TABLE_FORECAST, [_record(lat="18.00005", lng="-65.99995")])

    assert _delete(store, TABLE_FORECAST, "18.0", "-66.0", 0, 0) == 1
    assert store.count(TABLE_FORECAST) == 0


def test_snorkel_table_round_trip(store):
    record = _record(
        site_name="Escambron",
        region="north",
        swell_wave_direction=135.0,
        suitability_score=42,
    )
    store.insert_many(TABLE_SNORKEL, [record])

    assert store.count(TABLE_SNORKEL) == 1
    assert store.count(TABLE_FORECAST) == 0
    assert _delete(store, TABLE_SNORKEL, "18.0", "-66.0", 0, 0) == 1


def test_rejected_insert_reports_every_index(store):
    bad = [_record(hour=h, forecast_date=None) for h in range(3)]

    with pytest.raises(PersistenceFailure) as excinfo:
        store.insert_many(TABLE_FORECAST, bad)

    assert excinfo.value.indices == (0, 1, 2)
    assert store.count(TABLE_FORECAST) == 0


def test_unknown_table_is_rejected(store):
    with pytest.raises(PersistenceFailure, match="Unknown forecast table"):
        store.insert_many("nope", [_record()])


def test_unit_of_work_commits_delete_and_insert_together(store):
    store.insert_many(TABLE_FORECAST, [_record(hour=h, wave_height=1.0) for h in range(3)])

    with store.unit_of_work():
        _delete(store, TABLE_FORECAST, "18.0", "-66.0", 0, 2)
        store.insert_many(TABLE_FORECAST, [_record(hour=h) for h in range(3)])

    assert store.count(TABLE_FORECAST) == 3


def test_unit_of_work_rolls_back_delete_when_insert_fails(store):
    store.insert_many(TABLE_FORECAST, [_record(hour=h) for h in range(3)])

    with pytest.raises(PersistenceFailure):
        with store.unit_of_work():
            _delete(store, TABLE_FORECAST, "18.0", "-66.0", 0, 2)
            store.insert_many(TABLE_FORECAST, [_record(hour=0, forecast_date=None)])

    assert store.count(TABLE_FORECAST) == 3


def test_make_persistence_from_env_can_bootstrap_tables():
    port = make_persistence_from_env("sqlite://", bootstrap=True)
    try:
        assert port.count(TABLE_FORECAST) == 0
        assert port.insert_many(TABLE_FORECAST, [_record()]) == 1
    finally:
        port.close()

