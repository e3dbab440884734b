"""Query de últimas lecturas por dispositivo."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.domain import QueryUnavailableError, ReadingView
from ..infrastructure.persistence.schema import telemetry_table

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


def _as_utc(ts: datetime) -> datetime:
    # SQLite devuelve datetimes naive (guardados en UTC); Postgres timestamptz ya trae tz.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class LatestReadingsQuery:
    """Lecturas más recientes de un device, de la más nueva a la más vieja.

    ``max_limit`` protege al store de scans grandes: cualquier limit
    mayor se recorta. No reintenta: si el store no responde lanza
    QueryUnavailableError y el llamador decide.
    """

    def __init__(self, engine: Engine, max_limit: int = DEFAULT_LIMIT):
        if max_limit < 1:
            raise ValueError("max_limit must be >= 1")
        self._engine = engine
        self._max_limit = max_limit

    @property
    def max_limit(self) -> int:
        return self._max_limit

    def latest(self, device_id: str, limit: int = DEFAULT_LIMIT) -> List[ReadingView]:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        effective_limit = min(limit, self._max_limit)

        stmt = (
            select(
                telemetry_table.c.metric,
                telemetry_table.c.value,
                telemetry_table.c.timestamp,
            )
            .where(telemetry_table.c.device_id == device_id)
            .order_by(telemetry_table.c.timestamp.desc())
            .limit(effective_limit)
        )

        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).fetchall()
        except SQLAlchemyError as e:
            logger.error("[QUERY] Store unavailable device=%s err=%s", device_id, e)
            raise QueryUnavailableError(f"store unavailable: {e}") from e

        return [
            ReadingView(
                metric=str(row.metric),
                value=float(row.value),
                timestamp=_as_utc(row.timestamp),
            )
            for row in rows
        ]
