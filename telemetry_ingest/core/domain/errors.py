"""Taxonomía de errores del core de telemetría.

- SchemaError: fatal, bloquea el arranque.
- DecodeError / WriteError: por mensaje, se cuentan y se descartan.
- QueryError: se devuelve al llamador (HTTP 503).
- BrokerConnectionError: fatal tras agotar los reintentos.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class TelemetryError(Exception):
    """Base de todos los errores del servicio."""


class SchemaError(TelemetryError):
    """No se pudo crear/verificar la tabla telemetry o su hypertable."""


class DecodeFailure(str, Enum):
    MALFORMED_TOPIC = "malformed_topic"
    INVALID_VALUE = "invalid_value"


class DecodeError(TelemetryError):
    """Mensaje MQTT que no se puede convertir en Reading."""

    kind: DecodeFailure

    def __init__(self, message: str, *, topic: str):
        super().__init__(message)
        self.topic = topic


class MalformedTopicError(DecodeError):
    kind = DecodeFailure.MALFORMED_TOPIC


class InvalidValueError(DecodeError):
    kind = DecodeFailure.INVALID_VALUE


class WriteError(TelemetryError):
    """Fallo al insertar una lectura (store caído, constraint, etc.)."""

    def __init__(self, message: str, *, device_id: Optional[str] = None, metric: Optional[str] = None):
        super().__init__(message)
        self.device_id = device_id
        self.metric = metric


class QueryError(TelemetryError):
    """Fallo en el path de lectura."""


class QueryUnavailableError(QueryError):
    """El store no responde; el llamador decide si reintenta."""


class BrokerConnectionError(TelemetryError):
    """No se pudo (re)conectar al broker tras agotar los reintentos."""

    def __init__(self, message: str, *, attempts: int):
        super().__init__(message)
        self.attempts = attempts
