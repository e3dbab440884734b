from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from .config import Settings, get_settings


logger = logging.getLogger(__name__)


def create_store_engine(settings: Optional[Settings] = None) -> Engine:
    """Crea el engine compartido (pool de conexiones) para el store.

    Un solo engine por proceso: el receptor MQTT y las queries HTTP
    toman conexiones del mismo pool.
    """
    settings = settings or get_settings()
    url = make_url(settings.database_url)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Crear engine dialect=%s host=%s port=%s db=%s user=%s",
        url.get_backend_name(),
        url.host,
        url.port,
        url.database,
        url.username,
    )

    if url.get_backend_name() == "sqlite":
        # SQLite en memoria: una sola conexión compartida entre threads.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,
        future=True,
    )


def check_connection(engine: Engine) -> bool:
    """SELECT 1 contra el store. Devuelve False si no responde."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")
        return False
