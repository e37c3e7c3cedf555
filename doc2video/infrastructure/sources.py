"""
Fuentes externas de video (infraestructura compartida).
Contrato común, selección del mejor candidato y descarga en streaming.
"""
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import httpx

from ..domain.models import VideoCandidate
from ..errors import AuthenticationError, RateLimitError, SourceUnavailableError
from ..utils.backoff import RateLimiter, global_rate_limiter

logger = logging.getLogger(__name__)

TARGET_ASPECT_RATIO = 16 / 9
DURATION_WEIGHT = 0.7
ASPECT_WEIGHT = 0.3


def score_candidate(candidate: VideoCandidate, target_duration: float) -> float:
    """0.7 × cercanía de duración + 0.3 × cercanía a 16:9."""
    if candidate.duration > 0 and target_duration > 0:
        longest = max(candidate.duration, target_duration)
        duration_score = 1 - abs(candidate.duration - target_duration) / longest
    else:
        duration_score = 0.0

    if candidate.width > 0 and candidate.height > 0:
        ratio = candidate.width / candidate.height
        aspect_score = 1 - abs(ratio - TARGET_ASPECT_RATIO) / TARGET_ASPECT_RATIO
    else:
        aspect_score = 0.0

    return duration_score * DURATION_WEIGHT + aspect_score * ASPECT_WEIGHT


def select_best_candidate(candidates: List[VideoCandidate], target_duration: float) -> Optional[VideoCandidate]:
    if not candidates:
        return None
    return max(candidates, key=lambda c: score_candidate(c, target_duration))


def raise_for_source_status(response: httpx.Response, provider: str) -> None:
    """Traduce respuestas HTTP de error a la jerarquía APIError."""
    if response.is_success:
        return
    status = response.status_code
    if status in (401, 403):
        raise AuthenticationError(f"{provider}: credenciales rechazadas (HTTP {status})")
    if status == 429:
        raise RateLimitError(f"{provider}: límite de peticiones excedido")
    raise SourceUnavailableError(f"{provider}: HTTP {status}")


class VideoSource(ABC):
    """
    Fuente de stock footage. Sin API key la fuente queda desactivada
    y el resolver la salta.
    """

    name: str = "source"

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.rate_limiter = rate_limiter or global_rate_limiter
        if not self.api_key:
            logger.warning(f"{self.name}: API key no configurada, la fuente queda desactivada")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def search(self, query: str, target_duration: float) -> List[VideoCandidate]:
        """Busca videos para la query; la lista puede venir vacía."""

    def _get_json(self, url: str, params: dict, headers: Optional[dict] = None) -> dict:
        """GET con rate limiting y mapeo de errores."""
        self.rate_limiter.wait_if_needed(self.name)
        # Los timeouts se propagan como httpx.TransportError para que with_retry los reintente
        response = self.client.get(url, params=params, headers=headers or {})
        raise_for_source_status(response, self.name)
        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailableError(f"{self.name}: respuesta no es JSON") from e

    def download(self, url: str, destination: Path) -> Path:
        """
        Descarga un archivo en streaming.

        Escribe en `<destino>.part` y renombra al terminar; si el destino ya
        existe y no está vacío, lo reutiliza.
        """
        destination = Path(destination)
        if destination.exists() and destination.stat().st_size > 0:
            return destination

        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(destination.name + ".part")
        try:
            with self.client.stream("GET", url) as response:
                raise_for_source_status(response, self.name)
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
            partial.replace(destination)
        finally:
            if partial.exists():
                partial.unlink()

        logger.info(f"{self.name}: descargado {destination.name}")
        return destination

    def close(self) -> None:
        self.client.close()
