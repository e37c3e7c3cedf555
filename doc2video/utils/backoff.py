"""
Sistema de retry y rate limiting para APIs externas.
Implementa exponential backoff y control de tasa de peticiones.
"""

import logging
import threading
import time
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 60.0,
    exceptions: tuple = (Exception,),
):
    """
    Decorador para reintentar funciones con exponential backoff.

    Args:
        max_attempts: Número máximo de intentos
        min_wait: Tiempo mínimo de espera entre intentos (segundos)
        max_wait: Tiempo máximo de espera entre intentos (segundos)
        exceptions: Tupla de excepciones que disparan un reintento

    Returns:
        Decorador configurado
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


class RateLimiter:
    """
    Rate limiter por endpoint para controlar peticiones a APIs.

    Ventana fija por endpoint. Es seguro entre threads: los workers del
    scheduler comparten una sola instancia.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._window_start: dict[str, datetime] = defaultdict(lambda: datetime.min)
        self._request_counts: dict[str, int] = defaultdict(int)
        self._limits: dict[str, dict] = {
            # Límites por defecto
            "default": {"requests": 60, "period_seconds": 60},
            "openrouter": {"requests": 100, "period_seconds": 60},
            "pexels": {"requests": 200, "period_seconds": 3600},  # 200/hora
            "pixabay": {"requests": 100, "period_seconds": 60},
        }

    def set_limit(self, endpoint: str, requests: int, period_seconds: int) -> None:
        """Configura un límite para un endpoint."""
        with self._lock:
            self._limits[endpoint] = {
                "requests": requests,
                "period_seconds": period_seconds
            }

    def _get_limit(self, endpoint: str) -> dict:
        return self._limits.get(endpoint, self._limits["default"])

    def wait_if_needed(self, endpoint: str) -> float:
        """
        Espera si es necesario para cumplir con el rate limit.

        Args:
            endpoint: Nombre del endpoint

        Returns:
            Tiempo esperado en segundos
        """
        with self._lock:
            limit = self._get_limit(endpoint)
            period = timedelta(seconds=limit["period_seconds"])
            now = datetime.now()

            if now - self._window_start[endpoint] > period:
                self._window_start[endpoint] = now
                self._request_counts[endpoint] = 0

            wait_time = 0.0
            if self._request_counts[endpoint] >= limit["requests"]:
                wait_time = (period - (now - self._window_start[endpoint])).total_seconds()

            if wait_time <= 0:
                self._request_counts[endpoint] += 1
                return 0.0

            # La ventana se reserva antes de soltar el lock
            self._window_start[endpoint] = now + timedelta(seconds=wait_time)
            self._request_counts[endpoint] = 1

        logger.info(f"Rate limit alcanzado para {endpoint}. Esperando {wait_time:.1f}s")
        time.sleep(wait_time)
        return wait_time

    def get_remaining(self, endpoint: str) -> int:
        """Número de peticiones restantes en la ventana actual."""
        with self._lock:
            limit = self._get_limit(endpoint)
            return max(0, limit["requests"] - self._request_counts[endpoint])

    def reset(self, endpoint: Optional[str] = None) -> None:
        """
        Resetea los contadores.

        Args:
            endpoint: Endpoint específico o None para resetear todos
        """
        with self._lock:
            if endpoint:
                self._request_counts[endpoint] = 0
                self._window_start[endpoint] = datetime.min
            else:
                self._request_counts.clear()
                self._window_start.clear()


# Instancia global de rate limiter
global_rate_limiter = RateLimiter()
