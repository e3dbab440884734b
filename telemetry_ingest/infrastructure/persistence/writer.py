"""Writer de series temporales - append-only sobre la tabla telemetry."""

from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ...core.domain import Reading, WriteError
from .schema import telemetry_table

logger = logging.getLogger(__name__)

_ONE_MICROSECOND = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimeSeriesWriter:
    """Inserta lecturas de a una fila.

    El timestamp es el de ingesta (no el del productor) y es
    estrictamente creciente por instancia: si el reloj no avanza entre
    dos llamadas se suma 1µs al anterior. Sin reintentos: un fallo se
    reporta al llamador como WriteError y la lectura se pierde.
    """

    def __init__(self, engine: Engine, clock: Optional[Callable[[], datetime]] = None):
        self._engine = engine
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._last_ts: Optional[datetime] = None

    def _next_timestamp(self) -> datetime:
        with self._lock:
            ts = self._clock()
            if self._last_ts is not None and ts <= self._last_ts:
                ts = self._last_ts + _ONE_MICROSECOND
            self._last_ts = ts
            return ts

    def append(self, reading: Reading) -> Reading:
        """Persiste una lectura.

        Args:
            reading: Lectura decodificada (timestamp se ignora y se reasigna)

        Returns:
            La lectura con el timestamp de ingesta asignado

        Raises:
            WriteError: si el INSERT falla
        """
        stamped = dataclasses.replace(reading, timestamp=self._next_timestamp())

        try:
            with self._engine.begin() as conn:
                conn.execute(insert(telemetry_table), stamped.to_row())
        except SQLAlchemyError as e:
            logger.warning(
                "[WRITER] Insert failed device=%s metric=%s err=%s",
                reading.device_id,
                reading.metric,
                e,
            )
            raise WriteError(
                f"insert failed: {e}",
                device_id=reading.device_id,
                metric=reading.metric,
            ) from e

        logger.debug(
            "[WRITER] OK device=%s metric=%s value=%.4f",
            stamped.device_id,
            stamped.metric,
            stamped.value,
        )
        return stamped
