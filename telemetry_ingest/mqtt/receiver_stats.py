"""Statistics for the telemetry MQTT receiver.

Los contadores en memoria alimentan /mqtt/health; las métricas
Prometheus se exponen en /metrics.
"""

from __future__ import annotations

import threading

from prometheus_client import Counter, Gauge, Histogram

MQTT_MESSAGES = Counter(
    "telemetry_mqtt_messages_total",
    "Telemetry MQTT messages by outcome",
    ["status"],  # persisted, decode_error, write_error, processing_error
)
MQTT_PROCESSING_LATENCY = Histogram(
    "telemetry_mqtt_processing_seconds",
    "Decode + insert latency per MQTT message",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)
MQTT_RECEIVER_CONNECTED = Gauge(
    "telemetry_mqtt_receiver_connected",
    "MQTT receiver connection status",
)
MQTT_RECONNECTS = Counter(
    "telemetry_mqtt_reconnects_total",
    "Broker reconnection attempts",
)


class ReceiverStats:
    """Estadísticas del receptor MQTT."""

    def __init__(self):
        self._lock = threading.Lock()
        self.received = 0
        self.persisted = 0
        self.dropped_decode = 0
        self.dropped_write = 0
        self.failed = 0
        self.reconnects = 0
        self.last_message_at: float = 0

    @property
    def dropped(self) -> int:
        return self.dropped_decode + self.dropped_write + self.failed

    def record_received(self, at: float) -> None:
        with self._lock:
            self.received += 1
            self.last_message_at = at

    def record_persisted(self, seconds: float) -> None:
        with self._lock:
            self.persisted += 1
        MQTT_MESSAGES.labels(status="persisted").inc()
        MQTT_PROCESSING_LATENCY.observe(seconds)

    def record_decode_error(self) -> None:
        with self._lock:
            self.dropped_decode += 1
        MQTT_MESSAGES.labels(status="decode_error").inc()

    def record_write_error(self) -> None:
        with self._lock:
            self.dropped_write += 1
        MQTT_MESSAGES.labels(status="write_error").inc()

    def record_failure(self) -> None:
        with self._lock:
            self.failed += 1
        MQTT_MESSAGES.labels(status="processing_error").inc()

    def record_reconnect(self) -> None:
        with self._lock:
            self.reconnects += 1
        MQTT_RECONNECTS.inc()

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} persisted={self.persisted} "
            f"dropped_decode={self.dropped_decode} dropped_write={self.dropped_write} "
            f"failed={self.failed} reconnects={self.reconnects}"
        )

    def to_dict(self) -> dict:
        """Convert stats to dictionary."""
        with self._lock:
            return {
                "received": self.received,
                "persisted": self.persisted,
                "dropped": self.dropped,
                "dropped_decode": self.dropped_decode,
                "dropped_write": self.dropped_write,
                "failed": self.failed,
                "reconnects": self.reconnects,
                "last_message_at": self.last_message_at,
            }
