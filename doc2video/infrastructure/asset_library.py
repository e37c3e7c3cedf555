"""
Biblioteca de assets reutilizables.

Cada asset descargado se registra con su embedding; una escena nueva lo
reutiliza si es lo bastante similar y el archivo sigue en disco.
"""
import logging
import random
import string
import threading
import time
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..domain.models import AssetLibraryEntry, Scene, VisualQueryBundle
from ..llm.embeddings import EmbeddingProvider, HashEmbeddingProvider
from ..utils.cache import AssetStore
from ..utils.similarity import cosine_similarity

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_entry_id(source: str) -> str:
    """`<fuente>_<epoch ms>_<9 caracteres aleatorios>`"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{source}_{int(time.time() * 1000)}_{suffix}"


def reuse_text(scene: Scene, bundle: VisualQueryBundle) -> str:
    return f"{scene.title} {scene.summary} {bundle.primary_query} {bundle.secondary_query}"


class AssetLibrary:
    """
    Registro persistente de assets con búsqueda por similitud.

    Todas las operaciones se serializan con un único RLock; cada mutación
    se escribe al store en el momento (sin lotes).
    """

    def __init__(
        self,
        store: AssetStore,
        embedder: Optional[EmbeddingProvider] = None,
        similarity_threshold: float = 0.8,
    ):
        self.store = store
        self.embedder = embedder or HashEmbeddingProvider()
        self.similarity_threshold = similarity_threshold
        self._lock = threading.RLock()
        self._entries: Dict[str, AssetLibraryEntry] = {}
        self._load()

    def _load(self) -> None:
        with self._lock:
            for entry_id, record in self.store.records():
                try:
                    self._entries[entry_id] = AssetLibraryEntry.model_validate(record)
                except PydanticValidationError as e:
                    logger.warning(f"Registro inválido en la biblioteca ({entry_id}), se ignora: {e}")
        logger.info(f"Biblioteca de assets: {len(self._entries)} entradas cargadas")

    def _write(self, entry: AssetLibraryEntry) -> None:
        self.store.put(entry.id, entry.model_dump(mode="json"))

    def find_reusable(self, scene: Scene, bundle: VisualQueryBundle) -> Optional[AssetLibraryEntry]:
        """
        Busca el asset más similar a la escena por encima del umbral.

        Si lo encuentra incrementa `usage_count` y lo persiste.

        Returns:
            Copia de la entrada actualizada o None
        """
        query = self.embedder.embed(reuse_text(scene, bundle))

        with self._lock:
            best: Optional[Tuple[AssetLibraryEntry, float]] = None
            for entry in self._entries.values():
                if len(entry.embedding) != len(query):
                    continue
                score = cosine_similarity(query, entry.embedding)
                if score < self.similarity_threshold:
                    continue
                if not Path(entry.local_path).exists():
                    logger.debug(f"Asset {entry.id} sin archivo en disco, se salta")
                    continue
                if best is None or score > best[1]:
                    best = (entry, score)

            if best is None:
                return None

            entry, score = best
            updated = entry.model_copy(update={"usage_count": entry.usage_count + 1})
            self._entries[updated.id] = updated
            self._write(updated)

        logger.info(
            f"♻️ Reutilizando {updated.id} para escena {scene.id} "
            f"(similitud {score:.3f}, usos {updated.usage_count})"
        )
        return updated.model_copy(deep=True)

    def insert(self, entry: AssetLibraryEntry) -> None:
        with self._lock:
            self._entries[entry.id] = entry
            self._write(entry)
        logger.info(f"Asset agregado a la biblioteca: {entry.id}")

    def persist(self) -> int:
        """Reescribe todas las entradas al store. Devuelve cuántas escribió."""
        with self._lock:
            for entry in self._entries.values():
                self._write(entry)
            return len(self._entries)

    def get(self, entry_id: str) -> Optional[AssetLibraryEntry]:
        with self._lock:
            entry = self._entries.get(entry_id)
            return entry.model_copy(deep=True) if entry else None

    def entries(self) -> List[AssetLibraryEntry]:
        with self._lock:
            return [e.model_copy(deep=True) for e in self._entries.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        with self._lock:
            return {
                "entries": len(self._entries),
                "total_usage": sum(e.usage_count for e in self._entries.values()),
                "by_source": dict(Counter(e.source for e in self._entries.values())),
            }
