"""Backoff exponencial para la reconexión al broker."""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass
class RetryConfig:
    """Configuración para retry con backoff.

    ``max_attempts`` es el número de reintentos tras un fallo de conexión;
    0 = reintentar siempre. Siempre hay al menos un reintento con backoff.
    """

    max_attempts: int = 10
    base_delay: float = 1.0  # segundos
    max_delay: float = 30.0  # segundos
    exponential_base: float = 2.0
    jitter: bool = True  # Añadir variación aleatoria

    def calculate_delay(self, attempt: int) -> float:
        """Calcula el delay para un intento dado.

        Args:
            attempt: Número de intento (1-indexed)

        Returns:
            Delay en segundos
        """
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Añadir jitter de ±25%
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)

    def is_exhausted(self, failures: int) -> bool:
        """True si ``failures`` fallos consecutivos agotan los reintentos."""
        if self.max_attempts <= 0:
            return False
        return failures > self.max_attempts
