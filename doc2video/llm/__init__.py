"""Módulo LLM: generación de escenas, validación y embeddings."""

from .embeddings import (
    EmbeddingProvider,
    HashEmbeddingProvider,
    OpenAIEmbeddingProvider,
    build_embedding_provider,
)
from .openrouter import OpenRouterClient
from .validator import SceneParseResult, SceneValidator

__all__ = [
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "build_embedding_provider",
    "OpenRouterClient",
    "SceneParseResult",
    "SceneValidator",
]
