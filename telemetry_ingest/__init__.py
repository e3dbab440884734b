"""Telemetry ingestion and query service.

MQTT ``device/+/+`` → decoder → TimescaleDB ``telemetry`` hypertable,
plus the latest-readings query consumed by the HTTP layer.
"""

__version__ = "0.1.0"
