"""
Cliente Pexels - Infraestructura
Fuente primaria de stock footage.
"""
import logging
from typing import List

import httpx

from ..domain.models import VideoCandidate
from ..errors import RateLimitError
from ..utils.backoff import with_retry
from .sources import VideoSource

logger = logging.getLogger(__name__)


class PexelsSource(VideoSource):
    """Búsqueda de videos horizontales en la API de Pexels."""

    name = "pexels"
    BASE_URL = "https://api.pexels.com"

    @with_retry(max_attempts=3, min_wait=1.0, max_wait=10.0,
                exceptions=(httpx.TransportError, RateLimitError))
    def search(self, query: str, target_duration: float) -> List[VideoCandidate]:
        data = self._get_json(
            f"{self.BASE_URL}/videos/search",
            params={
                "query": query,
                "orientation": "landscape",
                "per_page": 10,
                "size": "medium",
            },
            headers={"Authorization": self.api_key or ""},
        )

        candidates = []
        for video in data.get("videos", []):
            # Nos quedamos con el archivo de mayor resolución que no pase de 1080p
            files = [
                f for f in video.get("video_files", [])
                if f.get("link") and f.get("width") and f.get("height")
            ]
            if not files:
                continue
            under_1080 = [f for f in files if f["height"] <= 1080] or files
            chosen = max(under_1080, key=lambda f: f["height"])

            candidates.append(VideoCandidate(
                provider=self.name,
                video_id=str(video.get("id")),
                page_url=video.get("url", ""),
                download_url=chosen["link"],
                duration=float(video.get("duration") or 0),
                width=chosen["width"],
                height=chosen["height"],
            ))

        logger.info(f"Pexels: {len(candidates)} candidatos para '{query}'")
        return candidates
