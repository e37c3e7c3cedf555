"""
Proveedores de embeddings (texto → vector).

Toda la lógica de similitud es agnóstica al proveedor concreto: basta con
implementar `EmbeddingProvider.embed`.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import OpenAI

from ..utils.backoff import with_retry

logger = logging.getLogger(__name__)


def simple_hash(word: str) -> int:
    """Hash de 32 bits estilo `h * 31 + c`, en valor absoluto."""
    h = 0
    for char in word:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


class EmbeddingProvider(ABC):
    """Interfaz mínima: un texto entra, un vector de largo fijo sale."""

    dimensions: int

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        ...


class HashEmbeddingProvider(EmbeddingProvider):
    """
    Embedding determinista basado en hashes de palabras.

    Cada palabra aporta `(hash % 100) / 100` a la dimensión `posición % N`;
    el vector resultante se normaliza (L2). Sirve para tests y como
    placeholder sin dependencias externas.
    """

    def __init__(self, dimensions: int = 5):
        if dimensions < 1:
            raise ValueError("dimensions debe ser >= 1")
        self.dimensions = dimensions

    def embed(self, text: str) -> List[float]:
        vector = [0.0] * self.dimensions
        for index, word in enumerate(text.lower().split()):
            vector[index % self.dimensions] += (simple_hash(word) % 100) / 100.0

        magnitude = sum(v * v for v in vector) ** 0.5
        return [v / (magnitude or 1.0) for v in vector]


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings reales vía API compatible con OpenAI."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: Optional[str] = None,
        dimensions: int = 256,
    ):
        self.model = model
        self.dimensions = dimensions
        self.client = OpenAI(api_key=api_key, base_url=base_url) if base_url else OpenAI(api_key=api_key)

    @with_retry(max_attempts=3, min_wait=1.0, max_wait=20.0)
    def embed(self, text: str) -> List[float]:
        response = self.client.embeddings.create(
            model=self.model,
            input=text or " ",
            dimensions=self.dimensions,
        )
        return list(response.data[0].embedding)


def build_embedding_provider(settings) -> EmbeddingProvider:
    """Elige el proveedor según la configuración (hash si no hay modelo/credencial)."""
    if settings.embedding_model and settings.openai_api_key:
        logger.info(f"Usando embeddings {settings.embedding_model}")
        return OpenAIEmbeddingProvider(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
        )
    return HashEmbeddingProvider(dimensions=settings.embedding_dimensions)
