"""Endpoint de últimas lecturas por dispositivo."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..core.domain import QueryUnavailableError
from ..queries import DEFAULT_LIMIT, LatestReadingsQuery
from ..schemas import LatestReadingOut

router = APIRouter(tags=["metrics"])


def get_latest_readings_query(request: Request) -> LatestReadingsQuery:
    return request.app.state.latest_readings_query


@router.get(
    "/metrics/latest/{device_id}",
    response_model=List[LatestReadingOut],
)
def get_latest_readings(
    device_id: str,
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    query: LatestReadingsQuery = Depends(get_latest_readings_query),
):
    """Lecturas más recientes del device, la más nueva primero.

    ``limit`` se recorta al máximo configurado. Un device desconocido
    devuelve una lista vacía.
    """
    try:
        views = query.latest(device_id, limit)
    except QueryUnavailableError:
        raise HTTPException(status_code=503, detail="store unavailable")

    return [LatestReadingOut(metric=v.metric, value=v.value, ts=v.timestamp) for v in views]
