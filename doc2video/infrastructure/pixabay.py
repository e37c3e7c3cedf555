"""
Cliente Pixabay - Infraestructura
Fuente secundaria de stock footage.
"""
import logging
from typing import List

import httpx

from ..domain.models import VideoCandidate
from ..errors import RateLimitError
from ..utils.backoff import with_retry
from .sources import VideoSource

logger = logging.getLogger(__name__)


class PixabaySource(VideoSource):
    """Búsqueda de videos en la API de Pixabay (usa la variante `large`)."""

    name = "pixabay"
    BASE_URL = "https://pixabay.com/api/videos/"

    @with_retry(max_attempts=3, min_wait=1.0, max_wait=10.0,
                exceptions=(httpx.TransportError, RateLimitError))
    def search(self, query: str, target_duration: float) -> List[VideoCandidate]:
        data = self._get_json(
            self.BASE_URL,
            params={
                "key": self.api_key or "",
                "q": query,
                "video_type": "film",
                "per_page": 10,
                "safesearch": "true",
            },
        )

        candidates = []
        for hit in data.get("hits", []):
            large = (hit.get("videos") or {}).get("large") or {}
            if not large.get("url"):
                continue
            candidates.append(VideoCandidate(
                provider=self.name,
                video_id=str(hit.get("id")),
                page_url=hit.get("pageURL", ""),
                download_url=large["url"],
                duration=float(hit.get("duration") or 0),
                width=int(large.get("width") or 0),
                height=int(large.get("height") or 0),
            ))

        logger.info(f"Pixabay: {len(candidates)} candidatos para '{query}'")
        return candidates
