"""Tests de persistencia: esquema, writer y query de últimas lecturas.

Usan SQLite en memoria como store (sin hypertable).
"""

from datetime import timedelta, timezone

import pytest
from sqlalchemy import inspect

from telemetry_ingest.core.domain import (
    QueryError,
    QueryUnavailableError,
    Reading,
    SchemaError,
    WriteError,
)
from telemetry_ingest.infrastructure.persistence import (
    TABLE_NAME,
    TimeSeriesWriter,
    ensure_schema,
)
from telemetry_ingest.mqtt.decoder import decode_message
from telemetry_ingest.queries import LatestReadingsQuery

from conftest import StepClock, count_rows


# =============================================================================
# SCHEMA
# =============================================================================

class TestSchemaInitializer:
    """ensure_schema es idempotente y falla en forma explícita."""

    def test_creates_table_with_columns(self, engine):
        insp = inspect(engine)

        assert insp.has_table(TABLE_NAME)
        columns = {c["name"] for c in insp.get_columns(TABLE_NAME)}
        assert columns == {"timestamp", "device_id", "metric", "value"}

    def test_second_call_is_noop(self, engine):
        ensure_schema(engine, create_extension=False)
        ensure_schema(engine, create_extension=False)

        insp = inspect(engine)
        assert insp.get_table_names() == [TABLE_NAME]
        index_names = [ix["name"] for ix in insp.get_indexes(TABLE_NAME)]
        assert index_names == ["ix_telemetry_device_id_timestamp"]

    def test_existing_rows_survive_reinitialization(self, engine, writer):
        writer.append(Reading("dev-001", "temperature", 1.0))

        ensure_schema(engine, create_extension=False)

        assert count_rows(engine) == 1

    def test_unreachable_store_raises_schema_error(self, broken_engine):
        with pytest.raises(SchemaError):
            ensure_schema(broken_engine, create_extension=False)


# =============================================================================
# WRITER
# =============================================================================

class TestTimeSeriesWriter:
    """Append-only con timestamp de ingesta."""

    def test_append_assigns_ingestion_timestamp(self, engine):
        clock = StepClock()
        expected_ts = clock.current
        writer = TimeSeriesWriter(engine, clock=clock)

        reading = Reading("dev-001", "temperature", 23.5)
        stored = writer.append(reading)

        assert stored.timestamp == expected_ts
        assert stored.is_persisted
        # El input es inmutable y no se toca
        assert reading.timestamp is None
        assert count_rows(engine) == 1

    def test_producer_timestamp_is_replaced(self, engine):
        clock = StepClock()
        writer = TimeSeriesWriter(engine, clock=clock)
        bogus = clock.current - timedelta(days=365)

        stored = writer.append(Reading("dev-001", "temperature", 1.0, timestamp=bogus))

        assert stored.timestamp != bogus

    def test_timestamps_strictly_increase_with_frozen_clock(self, engine):
        frozen = StepClock(step=timedelta(0))
        writer = TimeSeriesWriter(engine, clock=frozen)

        stamps = [writer.append(Reading("dev-001", "m", float(i))).timestamp for i in range(5)]

        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 5
        assert stamps[1] - stamps[0] == timedelta(microseconds=1)

    def test_values_are_stored_as_text_safe_parameters(self, engine, query):
        writer = TimeSeriesWriter(engine)
        device_id = "dev'); DROP TABLE telemetry; --"

        writer.append(Reading(device_id, "temperature", 1.0))

        views = query.latest(device_id)
        assert len(views) == 1
        assert views[0].metric == "temperature"

    def test_write_failure_raises_write_error(self, broken_engine):
        writer = TimeSeriesWriter(broken_engine)

        with pytest.raises(WriteError) as exc:
            writer.append(Reading("dev-001", "temperature", 23.5))

        assert exc.value.device_id == "dev-001"
        assert exc.value.metric == "temperature"


# =============================================================================
# LATEST READINGS QUERY
# =============================================================================

class TestLatestReadingsQuery:
    """Últimas N lecturas, más nueva primero, acotadas por max_limit."""

    def test_scenario_decode_append_query(self, writer, query):
        reading = decode_message("device/dev-001/temperature", b"23.5")
        writer.append(reading)

        views = query.latest("dev-001", 1)

        assert len(views) == 1
        assert views[0].metric == "temperature"
        assert views[0].value == 23.5
        assert views[0].timestamp.tzinfo is not None

    def test_newest_first_in_call_order(self, writer, query):
        for i in range(5):
            writer.append(Reading("dev-001", "temperature", float(i)))

        views = query.latest("dev-001", 10)

        assert [v.value for v in views] == [4.0, 3.0, 2.0, 1.0, 0.0]
        timestamps = [v.timestamp for v in views]
        assert timestamps == sorted(timestamps, reverse=True)

    def test_sixty_readings_returns_fifty_most_recent(self, writer, query):
        for i in range(60):
            writer.append(Reading("dev-001", "temperature", float(i)))

        views = query.latest("dev-001", 50)

        assert len(views) == 50
        assert [v.value for v in views] == [float(i) for i in range(59, 9, -1)]

    def test_unknown_device_returns_empty(self, query):
        assert query.latest("unknown-device") == []

    def test_other_devices_are_excluded(self, writer, query):
        writer.append(Reading("dev-001", "temperature", 1.0))
        writer.append(Reading("dev-002", "temperature", 2.0))

        views = query.latest("dev-001")

        assert [v.value for v in views] == [1.0]

    def test_limit_is_clamped_to_max(self, engine, writer):
        for i in range(10):
            writer.append(Reading("dev-001", "temperature", float(i)))
        small = LatestReadingsQuery(engine, max_limit=3)

        views = small.latest("dev-001", 1000)

        assert [v.value for v in views] == [9.0, 8.0, 7.0]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_rejected(self, query, limit):
        with pytest.raises(ValueError):
            query.latest("dev-001", limit)

    def test_timestamps_round_trip_as_utc(self, engine):
        clock = StepClock()
        first = clock.current
        writer = TimeSeriesWriter(engine, clock=clock)
        writer.append(Reading("dev-001", "temperature", 1.0))

        views = LatestReadingsQuery(engine).latest("dev-001")

        assert views[0].timestamp == first
        assert views[0].timestamp.utcoffset() == timezone.utc.utcoffset(None)

    def test_store_outage_raises_unavailable(self, broken_engine):
        query = LatestReadingsQuery(broken_engine)

        with pytest.raises(QueryUnavailableError) as exc:
            query.latest("dev-001")

        assert isinstance(exc.value, QueryError)
