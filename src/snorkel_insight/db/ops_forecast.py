"""SQLAlchemy-backed persistence for the forecast tables."""
from __future__ import annotations

import contextlib
import os
from typing import Dict, Iterator, Optional, Sequence, Type

from sqlalchemy import delete, func, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from snorkel_insight.db.bootstrap import ensure_tables
from snorkel_insight.db.models import Base, SnorkelForecast, WeatherForecast
from snorkel_insight.db.port import (
    TABLE_FORECAST,
    TABLE_SNORKEL,
    CoordinateRange,
    PersistenceFailure,
    PersistencePort,
    Record,
    TimeRange,
)
from snorkel_insight.db.session import get_session_factory, make_engine
from snorkel_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ops_forecast")

TABLE_MODELS: Dict[str, Type[Base]] = {
    TABLE_FORECAST: WeatherForecast,
    TABLE_SNORKEL: SnorkelForecast,
}


def _model_for(table: str) -> Type[Base]:
    try:
        return TABLE_MODELS[table]
    except KeyError:
        raise PersistenceFailure(f"Unknown forecast table '{table}'") from None


class SqlAlchemyPersistence(PersistencePort):
    """
    Range delete + bulk insert against the warehouse.

    Outside ``unit_of_work`` every call commits on its own. Inside it, calls
    share one session and commit together; any failure rolls the block back.
    """

    def __init__(self, session_factory: sessionmaker, *, engine: Optional[Engine] = None) -> None:
        self._session_factory = session_factory
        self._engine = engine
        self._active: Optional[Session] = None

    @contextlib.contextmanager
    def _session_scope(self) -> Iterator[Session]:
        if self._active is not None:
            yield self._active
            return
        with self._session_factory() as session:
            with session.begin():
                yield session

    @contextlib.contextmanager
    def unit_of_work(self) -> Iterator[None]:
        if self._active is not None:
            yield
            return
        with self._session_factory() as session:
            try:
                with session.begin():
                    self._active = session
                    yield
            except SQLAlchemyError as exc:
                raise PersistenceFailure(f"Transaction rolled back: {exc}") from exc
            finally:
                self._active = None

    def delete(
        self,
        table: str,
        lat_range: CoordinateRange,
        lng_range: CoordinateRange,
        timestamp_range: TimeRange,
    ) -> int:
        model = _model_for(table)
        stmt = (
            delete(model)
            .where(
                model.latitude.between(*lat_range),
                model.longitude.between(*lng_range),
                model.forecast_timestamp.between(*timestamp_range),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            with self._session_scope() as session:
                result = session.execute(stmt)
                deleted = result.rowcount or 0
        except SQLAlchemyError as exc:
            logger.error("Delete from %s failed: %s", table, exc)
            raise PersistenceFailure(f"Delete from {table} failed: {exc}") from exc
        logger.debug("Deleted %d rows from %s", deleted, table)
        return deleted

    def insert_many(self, table: str, records: Sequence[Record]) -> int:
        if not records:
            return 0
        model = _model_for(table)
        try:
            with self._session_scope() as session:
                session.execute(insert(model), [dict(r) for r in records])
        except SQLAlchemyError as exc:
            logger.error("Insert of %d rows into %s failed: %s", len(records), table, exc)
            raise PersistenceFailure(
                f"Insert into {table} failed: {exc}",
                indices=range(len(records)),
            ) from exc
        return len(records)

    def count(self, table: str) -> Optional[int]:
        model = _model_for(table)
        try:
            with self._session_scope() as session:
                return session.execute(select(func.count()).select_from(model)).scalar_one()
        except SQLAlchemyError as exc:
            logger.warning("Could not count rows in %s: %s", table, exc)
            return None

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()


def make_persistence_from_env(dsn: Optional[str] = None, *, bootstrap: Optional[bool] = None) -> SqlAlchemyPersistence:
    """Build a persistence port with its own engine from ``WAREHOUSE_DB_*`` settings."""
    engine = make_engine(dsn)
    if bootstrap is None:
        bootstrap = os.getenv("SNORKEL_BOOTSTRAP_TABLES", "false").lower() in ("1", "true", "yes")
    if bootstrap:
        ensure_tables(engine)
    return SqlAlchemyPersistence(get_session_factory(engine), engine=engine)
