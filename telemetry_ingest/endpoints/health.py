"""Health and readiness endpoints."""

from fastapi import APIRouter, HTTPException, Request

from common.db import check_connection

from ..schemas import ReceiverHealth

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe — always returns ok if process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready(request: Request):
    """Readiness probe — checks store connectivity."""
    if not check_connection(request.app.state.engine):
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}


@router.get("/mqtt/health", response_model=ReceiverHealth)
def mqtt_health(request: Request):
    """Estado del receptor MQTT (None si la ingesta está deshabilitada)."""
    receiver = request.app.state.receiver
    if receiver is None:
        return ReceiverHealth(enabled=False, healthy=False)
    return ReceiverHealth(enabled=True, **receiver.health_check())


@router.get("/mqtt/stats")
def mqtt_stats(request: Request):
    receiver = request.app.state.receiver
    if receiver is None:
        return {"enabled": False}
    return {"enabled": True, **receiver.stats}
