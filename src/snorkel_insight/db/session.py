"""Engine and session factories for the warehouse database."""
from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def build_dsn() -> str:
    """Build a Postgres DSN from environment variables."""
    host = os.getenv("WAREHOUSE_DB_HOST", "postgres-warehouse")
    port = os.getenv("WAREHOUSE_DB_PORT", "5432")
    user = os.getenv("WAREHOUSE_DB_USER", "analytics")
    password = os.getenv("WAREHOUSE_DB_PASSWORD", "analytics")
    db = os.getenv("WAREHOUSE_DB_DB", "opendata")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}"


def make_engine(dsn: Optional[str] = None, **kwargs) -> Engine:
    """Create an engine; callers own its lifetime."""
    options = {"pool_pre_ping": True, "future": True}
    if not (dsn or "").startswith("sqlite"):
        options.update(pool_size=5, max_overflow=10)
    options.update(kwargs)
    return create_engine(dsn or build_dsn(), **options)


def get_session_factory(engine: Engine) -> sessionmaker:
    """Return a configured SQLAlchemy session factory bound to ``engine``."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
