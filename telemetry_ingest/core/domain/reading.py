"""Modelo de dominio para lecturas de telemetría."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Reading:
    """Lectura device/metric/value - modelo canónico de dominio.

    Este es el contrato que fluye por todo el pipeline:
    MQTT → decoder → writer → tabla telemetry

    Inmutable: el decoder la construye sin ``timestamp`` y el writer
    devuelve una copia con el timestamp de ingesta asignado.
    """
    device_id: str
    metric: str
    value: float
    timestamp: Optional[datetime] = None

    @property
    def is_persisted(self) -> bool:
        return self.timestamp is not None

    def to_row(self) -> dict:
        """Convierte a parámetros del INSERT."""
        return {
            "timestamp": self.timestamp,
            "device_id": self.device_id,
            "metric": self.metric,
            "value": float(self.value),
        }


@dataclass(frozen=True)
class ReadingView:
    """Fila devuelta por la query de últimas lecturas (device_id implícito)."""
    metric: str
    value: float
    timestamp: datetime
