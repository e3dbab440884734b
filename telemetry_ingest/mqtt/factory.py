"""Factory del receptor MQTT a partir de Settings."""

from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.engine import Engine

from common.config import Settings

from ..infrastructure.persistence import TimeSeriesWriter
from ..ingest.resilience import RetryConfig
from .receiver import TelemetryReceiver


def build_receiver(
    settings: Settings,
    engine: Engine,
    on_fatal: Optional[Callable[[BaseException], None]] = None,
) -> TelemetryReceiver:
    """Arma el receptor con su writer; el engine se inyecta, no se busca."""
    return TelemetryReceiver(
        writer=TimeSeriesWriter(engine),
        broker_host=settings.mqtt_broker_host,
        broker_port=settings.mqtt_broker_port,
        username=settings.mqtt_username,
        password=settings.mqtt_password,
        client_id=settings.mqtt_client_id,
        qos=settings.mqtt_qos,
        keepalive=settings.mqtt_keepalive,
        retry=RetryConfig(
            max_attempts=settings.reconnect_max_attempts,
            base_delay=settings.reconnect_base_delay,
            max_delay=settings.reconnect_max_delay,
        ),
        on_fatal=on_fatal,
    )
