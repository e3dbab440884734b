"""Módulo de queries para consultas al store.

Contiene consultas de solo lectura sin lógica de negocio.
"""

from .latest_readings import DEFAULT_LIMIT, LatestReadingsQuery

__all__ = [
    "DEFAULT_LIMIT",
    "LatestReadingsQuery",
]
