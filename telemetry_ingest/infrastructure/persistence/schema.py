"""Esquema de la tabla telemetry y su hypertable TimescaleDB.

``ensure_schema`` es idempotente: se ejecuta en cada arranque antes de
iniciar el receptor MQTT. Si falla, el proceso no debe continuar.
"""

from __future__ import annotations

import logging

from sqlalchemy import (
    Column,
    DateTime,
    Double,
    Index,
    MetaData,
    Table,
    Text,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ...core.domain import SchemaError

logger = logging.getLogger(__name__)

TABLE_NAME = "telemetry"
TIME_COLUMN = "timestamp"

metadata = MetaData()

telemetry_table = Table(
    TABLE_NAME,
    metadata,
    Column(TIME_COLUMN, DateTime(timezone=True), nullable=False),
    Column("device_id", Text, nullable=False),
    Column("metric", Text, nullable=False),
    Column("value", Double, nullable=False),
    Index("ix_telemetry_device_id_timestamp", "device_id", TIME_COLUMN),
)


def ensure_schema(engine: Engine, *, create_extension: bool = True) -> None:
    """Ensure the telemetry table and its time partitioning exist.

    Creates the table and the (device_id, timestamp) index if they don't
    exist. On PostgreSQL the table is promoted to a TimescaleDB hypertable
    with ``if_not_exists``. Safe to call multiple times.

    Args:
        engine: Store engine
        create_extension: Run ``CREATE EXTENSION IF NOT EXISTS timescaledb``

    Raises:
        SchemaError: if the store is unreachable or any DDL fails
    """
    logger.info("[SCHEMA] Ensuring %s schema exists", TABLE_NAME)

    try:
        with engine.begin() as conn:
            dialect = conn.dialect.name
            if dialect == "postgresql" and create_extension:
                conn.execute(text("CREATE EXTENSION IF NOT EXISTS timescaledb"))

            metadata.create_all(conn, checkfirst=True)

            if dialect == "postgresql":
                _create_hypertable(conn)
            else:
                logger.info(
                    "[SCHEMA] Dialect %s has no hypertables - skipping time partitioning",
                    dialect,
                )
    except SQLAlchemyError as e:
        logger.error("[SCHEMA] Schema creation failed: %s", e)
        raise SchemaError(f"could not establish {TABLE_NAME} schema: {e}") from e

    logger.info("[SCHEMA] Schema ready")


def _create_hypertable(conn: Connection) -> None:
    conn.execute(
        text(
            "SELECT create_hypertable(:table, :time_column, if_not_exists => TRUE)"
        ),
        {"table": TABLE_NAME, "time_column": TIME_COLUMN},
    )
    logger.info("[SCHEMA] Hypertable %s partitioned on %s", TABLE_NAME, TIME_COLUMN)
