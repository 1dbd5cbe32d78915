"""Utilities to record forecast update outcomes into the warehouse for observability."""
from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from snorkel_insight.db.port import InvocationContext
from snorkel_insight.db.utils import utcnow
from snorkel_insight.models.payloads import RunResult
from snorkel_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="run_logger")
RUN_LOG_TABLE = os.getenv("SNORKEL_RUN_LOG_TABLE", "ops.snorkel_ingest_runs")


def _split_table(identifier: str) -> tuple[str | None, str]:
    """Split a possibly schema-qualified table name."""
    if "." in identifier:
        schema, table = identifier.split(".", 1)
        return schema, table
    return None, identifier


def _ensure_table(conn, table_name: str) -> None:
    """Create the run log table if it doesn't already exist."""
    schema, _ = _split_table(table_name)
    if schema and conn.dialect.name == "postgresql":
        conn.execute(text(f'create schema if not exists "{schema}"'))
    conn.execute(
        text(
            f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                request_id text,
                state text NOT NULL,
                locations_updated integer,
                locations_failed integer,
                api_calls integer,
                execution_time_seconds double precision,
                error text,
                logged_at timestamp
            )
            """
        )
    )


class RunLogger:
    """Best-effort writer of one row per run; failures are logged, never raised."""

    def __init__(self, engine: Engine, table_name: Optional[str] = None) -> None:
        self._engine = engine
        self._table_name = table_name or RUN_LOG_TABLE

    def __call__(self, result: RunResult, context: Optional[InvocationContext] = None) -> None:
        summary = result.summary
        payload = {
            "request_id": context.invocation_id if context else None,
            "state": "success" if result.success else "failed",
            "locations_updated": summary.locations_updated if summary else None,
            "locations_failed": summary.locations_failed if summary else None,
            "api_calls": summary.api_calls if summary else None,
            "execution_time_seconds": summary.execution_time_seconds if summary else None,
            "error": result.error,
            "logged_at": utcnow().replace(tzinfo=None),
        }
        try:
            with self._engine.begin() as conn:
                _ensure_table(conn, self._table_name)
                conn.execute(
                    text(
                        f"""
                        INSERT INTO {self._table_name} (
                            request_id, state, locations_updated, locations_failed,
                            api_calls, execution_time_seconds, error, logged_at
                        )
                        VALUES (
                            :request_id, :state, :locations_updated, :locations_failed,
                            :api_calls, :execution_time_seconds, :error, :logged_at
                        )
                        """
                    ),
                    payload,
                )
        except SQLAlchemyError as exc:
            logger.warning("Failed to write run log: %s", exc)

    def close(self) -> None:
        self._engine.dispose()
