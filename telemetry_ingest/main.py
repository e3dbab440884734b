from __future__ import annotations

import logging
import os
import signal
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from common.config import Settings, get_settings
from common.db import create_store_engine

from . import __version__
from .endpoints import health_router, latest_readings_router, prometheus_router
from .infrastructure.persistence import ensure_schema
from .mqtt import TelemetryReceiver, build_receiver
from .queries import LatestReadingsQuery

logger = logging.getLogger(__name__)


def _terminate_process(error: BaseException) -> None:
    # Sin broker no hay ingesta: que uvicorn haga su shutdown normal y el orquestador reinicie.
    logger.critical("[APP] Fatal ingestion error, shutting down: %s", error)
    os.kill(os.getpid(), signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    owns_engine = app.state.engine is None
    if owns_engine:
        app.state.engine = create_store_engine(settings)
    engine: Engine = app.state.engine

    # SchemaError aborta el arranque antes de suscribirse
    try:
        ensure_schema(engine, create_extension=settings.timescale_create_extension)
    except Exception:
        if owns_engine:
            engine.dispose()
        raise

    app.state.latest_readings_query = LatestReadingsQuery(engine, max_limit=settings.query_max_limit)

    receiver: Optional[TelemetryReceiver] = None
    if settings.mqtt_ingest_enabled:
        receiver = build_receiver(settings, engine, on_fatal=_terminate_process)
        receiver.start()
    else:
        logger.info("[APP] MQTT ingest disabled (MQTT_INGEST_ENABLED=false) - query-only mode")
    app.state.receiver = receiver

    try:
        yield
    finally:
        if receiver is not None:
            receiver.stop()
        if owns_engine:
            engine.dispose()


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    app = FastAPI(title="Telemetry Ingest Service", version=__version__, lifespan=lifespan)
    app.state.settings = settings or get_settings()
    app.state.engine = engine
    app.state.receiver = None

    app.include_router(health_router)
    app.include_router(latest_readings_router)
    app.include_router(prometheus_router)
    return app


app = create_app()
