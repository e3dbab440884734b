"""Fixtures compartidas: store SQLite en memoria y Settings de prueba."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, func, select

from common.config import Settings
from common.db import create_store_engine
from telemetry_ingest.infrastructure.persistence import (
    TimeSeriesWriter,
    ensure_schema,
    telemetry_table,
)
from telemetry_ingest.queries import LatestReadingsQuery


def make_settings(**overrides) -> Settings:
    base = Settings(
        mqtt_broker_host="localhost",
        mqtt_broker_port=1883,
        mqtt_username=None,
        mqtt_password=None,
        mqtt_client_id="telemetry-test",
        mqtt_qos=0,
        mqtt_keepalive=60,
        mqtt_ingest_enabled=False,
        reconnect_max_attempts=3,
        reconnect_base_delay=0.0,
        reconnect_max_delay=0.0,
        database_url="sqlite://",
        db_pool_size=1,
        db_max_overflow=0,
        timescale_create_extension=False,
        query_max_limit=50,
        log_level="DEBUG",
    )
    return dataclasses.replace(base, **overrides)


class StepClock:
    """Reloj determinista: avanza ``step`` en cada llamada."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.current = start or datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


def count_rows(engine) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(telemetry_table)).scalar_one()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def engine(settings):
    engine = create_store_engine(settings)
    ensure_schema(engine, create_extension=False)
    yield engine
    engine.dispose()


@pytest.fixture
def broken_engine(tmp_path):
    """Engine cuyo store no existe: cualquier conexión falla."""
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'store.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def writer(engine) -> TimeSeriesWriter:
    return TimeSeriesWriter(engine)


@pytest.fixture
def query(engine) -> LatestReadingsQuery:
    return LatestReadingsQuery(engine, max_limit=50)
