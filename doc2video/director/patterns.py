"""
Base de conocimiento de patrones visuales.
Cada patrón agrupa keywords, un mood y queries de búsqueda probadas.
"""
import logging
from pathlib import Path
from typing import Iterator, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..domain.models import VisualPattern
from ..llm.embeddings import EmbeddingProvider, HashEmbeddingProvider

logger = logging.getLogger(__name__)

FALLBACK_PATTERN = {
    "id": "business_professional",
    "keywords": ["office", "meeting", "professional", "business"],
    "mood": "corporate",
    "queries": ["business meeting", "office work"],
}


def pattern_text(pattern: VisualPattern) -> str:
    """Texto que representa al patrón para calcular su embedding."""
    return " ".join(pattern.keywords + [pattern.mood] + pattern.queries)


class VisualPatternLibrary:
    """Patrones cargados una sola vez; solo lectura durante la ejecución."""

    def __init__(self, patterns: List[VisualPattern], embedder: Optional[EmbeddingProvider] = None):
        self.embedder = embedder or HashEmbeddingProvider()
        self.patterns = [self._with_embedding(p) for p in patterns]

    @classmethod
    def from_yaml(cls, path: str, embedder: Optional[EmbeddingProvider] = None) -> "VisualPatternLibrary":
        """
        Carga patrones desde YAML (lista bajo la clave `patterns`).
        Si el archivo falta o es inválido, usa el patrón por defecto.
        """
        try:
            with open(Path(path), "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            raw_patterns = data.get("patterns", []) if isinstance(data, dict) else data
            patterns = [VisualPattern(**raw) for raw in raw_patterns]
            if not patterns:
                raise ValueError("el archivo no contiene patrones")
            logger.info(f"Cargados {len(patterns)} patrones visuales")
        except (OSError, yaml.YAMLError, TypeError, ValueError, PydanticValidationError) as e:
            logger.warning(f"No se pudieron cargar los patrones visuales ({e}), usando patrón por defecto")
            patterns = [VisualPattern(**FALLBACK_PATTERN)]
        return cls(patterns, embedder)

    @classmethod
    def default(cls, embedder: Optional[EmbeddingProvider] = None) -> "VisualPatternLibrary":
        return cls([VisualPattern(**FALLBACK_PATTERN)], embedder)

    def _with_embedding(self, pattern: VisualPattern) -> VisualPattern:
        if len(pattern.embedding) == self.embedder.dimensions:
            return pattern
        return pattern.model_copy(update={"embedding": self.embedder.embed(pattern_text(pattern))})

    def get(self, pattern_id: str) -> Optional[VisualPattern]:
        return next((p for p in self.patterns if p.id == pattern_id), None)

    def __iter__(self) -> Iterator[VisualPattern]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)
