"""Persistencia en el store de series temporales (TimescaleDB)."""

from .schema import TABLE_NAME, ensure_schema, telemetry_table
from .writer import TimeSeriesWriter

__all__ = [
    "TABLE_NAME",
    "ensure_schema",
    "telemetry_table",
    "TimeSeriesWriter",
]
