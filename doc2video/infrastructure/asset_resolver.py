"""
Resolución de assets por escena.

Cadena de intentos (gana el primero que funcione):
biblioteca → fuente primaria → fuente secundaria → queries de respaldo
(solo en la primaria) → marcador de fallback.
"""
import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple

import httpx

from ..domain.models import (
    AssetLibraryEntry,
    AssetOrigin,
    FetchedAsset,
    Scene,
    VideoCandidate,
    VisualQueryBundle,
)
from ..errors import APIError
from .asset_library import AssetLibrary, new_entry_id
from .sources import VideoSource, select_best_candidate

logger = logging.getLogger(__name__)

NO_ASSET_REASON = "No suitable video found in any source"


def asset_embedding_text(scene: Scene, query: str) -> str:
    return f"{scene.title} {query} {scene.mood.value} {scene.visual_keywords}"


class AssetResolver:
    """Consigue un asset para cada escena sin lanzar nunca excepciones."""

    def __init__(
        self,
        library: AssetLibrary,
        primary: Optional[VideoSource] = None,
        secondary: Optional[VideoSource] = None,
        assets_dir: str = "./assets",
    ):
        """
        Args:
            library: Biblioteca compartida (define también el embedder)
            primary: Fuente primaria (Pexels); None la desactiva
            secondary: Fuente secundaria (Pixabay); None la desactiva
            assets_dir: Directorio de descargas
        """
        self.library = library
        self.primary = primary
        self.secondary = secondary
        self.assets_dir = Path(assets_dir)
        self.assets_dir.mkdir(parents=True, exist_ok=True)

    def _attempts(self, bundle: VisualQueryBundle) -> List[Tuple[Optional[VideoSource], str, AssetOrigin]]:
        attempts = [
            (self.primary, bundle.primary_query, AssetOrigin.PRIMARY),
            (self.secondary, bundle.secondary_query, AssetOrigin.SECONDARY),
        ]
        attempts.extend((self.primary, q, AssetOrigin.PRIMARY) for q in bundle.backup_queries)
        return attempts

    def resolve(self, scene: Scene, bundle: VisualQueryBundle) -> FetchedAsset:
        try:
            return self._resolve(scene, bundle)
        except Exception as e:
            logger.error(f"Error inesperado resolviendo la escena {scene.id}: {e}")
            return FetchedAsset.failure(str(e), scene_id=scene.id)

    def _resolve(self, scene: Scene, bundle: VisualQueryBundle) -> FetchedAsset:
        try:
            reused = self.library.find_reusable(scene, bundle)
        except Exception as e:
            logger.warning(f"Biblioteca no disponible para la escena {scene.id}, se buscan fuentes externas: {e}")
            reused = None
        if reused is not None:
            return FetchedAsset(
                success=True,
                source=AssetOrigin.LIBRARY,
                asset_path=reused.local_path,
                asset_url=reused.source_url,
                duration=reused.duration_seconds,
                dimensions={"width": reused.width, "height": reused.height},
                metadata={
                    "library_id": reused.id,
                    "usage_count": reused.usage_count,
                    "provider": reused.source,
                    "query": reused.origin_query,
                },
            )

        tried = set()
        for source, query, origin in self._attempts(bundle):
            if source is None or not source.is_configured:
                continue
            if (source.name, query) in tried:
                continue
            tried.add((source.name, query))

            asset = self._fetch_from(source, query, scene, origin)
            if asset is not None:
                return asset

        logger.warning(f"⚠️ Escena {scene.id}: sin video en ninguna fuente, se usará fallback")
        return FetchedAsset.fallback(scene.id, NO_ASSET_REASON)

    def _fetch_from(
        self,
        source: VideoSource,
        query: str,
        scene: Scene,
        origin: AssetOrigin,
    ) -> Optional[FetchedAsset]:
        """Busca, descarga y registra en la biblioteca. None si la fuente no sirvió."""
        try:
            logger.info(f"🔍 Escena {scene.id}: buscando '{query}' en {source.name}")
            candidates = source.search(query, scene.duration_seconds)
            best = select_best_candidate(candidates, scene.duration_seconds)
            if best is None:
                logger.info(f"{source.name}: sin resultados para '{query}'")
                return None

            filename = f"scene_{scene.id}_{source.name}_{int(time.time() * 1000)}.mp4"
            path = source.download(best.download_url, self.assets_dir / filename)
        except (APIError, httpx.HTTPError, OSError) as e:
            logger.warning(f"{source.name} falló para '{query}': {e}")
            return None

        metadata = {
            "provider": source.name,
            "query": query,
            "video_id": best.video_id,
        }
        try:
            metadata["library_id"] = self._register(scene, query, best, path).id
        except Exception as e:
            logger.warning(f"No se pudo registrar {path.name} en la biblioteca: {e}")

        return FetchedAsset(
            success=True,
            source=origin,
            asset_path=str(path),
            asset_url=best.page_url or best.download_url,
            duration=best.duration,
            dimensions={"width": best.width, "height": best.height},
            metadata=metadata,
        )

    def _register(self, scene: Scene, query: str, candidate: VideoCandidate, path: Path) -> AssetLibraryEntry:
        entry = AssetLibraryEntry(
            id=new_entry_id(candidate.provider),
            source_url=candidate.download_url,
            local_path=str(path),
            origin_query=query,
            source=candidate.provider,
            duration_seconds=candidate.duration,
            width=candidate.width,
            height=candidate.height,
            keywords=query.split(),
            embedding=self.library.embedder.embed(asset_embedding_text(scene, query)),
            usage_count=1,
            metadata={
                "scene_id": scene.id,
                "scene_title": scene.title,
                "mood": scene.mood.value,
                "video_id": candidate.video_id,
                "page_url": candidate.page_url,
            },
        )
        self.library.insert(entry)
        return entry
