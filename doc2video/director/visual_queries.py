"""
Refinamiento de queries visuales (recuperación + re-ranking).

Para cada escena:
1. Recupera los 2K patrones más similares por embedding
2. Re-rankea con un score compuesto (similitud, Jaccard, mood, keywords)
3. Sintetiza queries de búsqueda específicas para cada plataforma
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..domain.models import (
    MAX_QUERY_LENGTH,
    MAX_REFINED_KEYWORDS,
    MIN_QUERY_LENGTH,
    Scene,
    VisualPattern,
    VisualQueryBundle,
    split_keywords,
)
from ..llm.embeddings import EmbeddingProvider, HashEmbeddingProvider
from ..utils.similarity import top_k
from .patterns import VisualPatternLibrary

logger = logging.getLogger(__name__)

# Pesos del score compuesto
WEIGHT_SIMILARITY = 0.4
WEIGHT_SEMANTIC = 0.3
WEIGHT_MOOD = 0.2
WEIGHT_OVERLAP = 0.1

MOOD_COMPATIBILITY: Dict[str, List[str]] = {
    "corporate": ["corporate", "informative", "professional"],
    "informative": ["informative", "corporate", "educational"],
    "inspirational": ["inspirational", "warm", "creative"],
    "warm": ["warm", "inspirational", "friendly"],
}

MOOD_ADJECTIVES: Dict[str, str] = {
    "corporate": "professional",
    "informative": "educational",
    "inspirational": "motivating",
    "warm": "friendly",
}

PLATFORM_PREFERENCES: Dict[str, List[str]] = {
    "primary": ["business", "professional", "office", "meeting"],
    "secondary": ["work", "team", "corporate", "people"],
}

GENERIC_BACKUPS = ["professional work", "office meeting", "corporate presentation"]
FALLBACK_BACKUPS = ["office meeting", "team collaboration", "business presentation"]
FALLBACK_PATTERN_ID = "business_professional"


@dataclass
class RankedPattern:
    pattern: VisualPattern
    similarity: float
    score: float = 0.0


def semantic_relevance(pattern: VisualPattern, scene: Scene) -> float:
    """Jaccard entre las palabras de título+resumen y las de los keywords del patrón."""
    scene_words = set(f"{scene.title} {scene.summary}".lower().split())
    pattern_words = set(" ".join(pattern.keywords).lower().split())
    union = scene_words | pattern_words
    if not union:
        return 0.0
    return len(scene_words & pattern_words) / len(union)


def mood_alignment(pattern: VisualPattern, scene: Scene) -> float:
    mood = scene.mood.value
    compatible = MOOD_COMPATIBILITY.get(mood, [mood])
    return 1.0 if pattern.mood.lower() in compatible else 0.3


def keyword_overlap(pattern: VisualPattern, scene: Scene) -> float:
    """Fracción de keywords de la escena contenidas en (o que contienen) algún keyword del patrón."""
    scene_keywords = scene.keyword_list()
    if not scene_keywords:
        return 0.0
    pattern_keywords = [k.lower() for k in pattern.keywords]
    overlapping = [
        sk for sk in scene_keywords
        if any(pk in sk or sk in pk for pk in pattern_keywords)
    ]
    return len(overlapping) / len(scene_keywords)


def scene_embedding_text(scene: Scene) -> str:
    return f"{scene.title} {scene.summary} {scene.visual_keywords} {scene.mood.value}"


def _valid_query(query: str) -> bool:
    return MIN_QUERY_LENGTH <= len(query) <= MAX_QUERY_LENGTH


def _unique(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


def generate_queries(scene: Scene, pattern_queries: Sequence[str]) -> List[str]:
    """
    Queries candidatas en orden de preferencia:
    título+mood, keywords de la escena, queries de patrones y backups genéricos.
    """
    queries = []
    mood = scene.mood.value

    title_words = scene.title.lower().split()
    if len(title_words) >= 2:
        adjective = MOOD_ADJECTIVES.get(mood, "professional")
        queries.append(f"{adjective} {' '.join(title_words[:2])}")

    keywords = scene.keyword_list()
    if len(keywords) >= 2:
        queries.append(" ".join(keywords[:2]))

    queries.extend(pattern_queries[:2])
    queries.append(f"{mood} business")
    queries.extend(GENERIC_BACKUPS)

    return [q for q in _unique(queries) if _valid_query(q)]


def select_best_query(queries: Sequence[str], platform: str, scene: Scene) -> str:
    """Primera query con una keyword preferida por la plataforma, o la primera disponible."""
    preferences = PLATFORM_PREFERENCES.get(platform, [])
    for query in queries:
        lowered = query.lower()
        if any(pref in lowered for pref in preferences):
            return query
    return queries[0] if queries else f"{scene.mood.value} business"


def fallback_bundle(scene: Scene) -> VisualQueryBundle:
    """Bundle determinista derivado solo de los keywords y el mood de la escena."""
    return VisualQueryBundle(
        refined_keywords=scene.keyword_list()[:5],
        primary_query=f"{scene.mood.value} business",
        secondary_query="professional work",
        backup_queries=list(FALLBACK_BACKUPS),
        matched_pattern_ids=[FALLBACK_PATTERN_ID],
    )


class VisualQueryRefiner:
    """Genera el VisualQueryBundle de cada escena a partir de la base de patrones."""

    def __init__(
        self,
        patterns: Optional[VisualPatternLibrary] = None,
        embedder: Optional[EmbeddingProvider] = None,
        top_k: int = 3,
    ):
        """
        Args:
            patterns: Base de patrones (usa el patrón por defecto si no se pasa)
            embedder: Proveedor de embeddings; debe coincidir con el de los patrones
            top_k: Cantidad de patrones a conservar tras el re-ranking
        """
        self.embedder = embedder or (patterns.embedder if patterns else HashEmbeddingProvider())
        self.patterns = patterns or VisualPatternLibrary.default(self.embedder)
        self.top_k = top_k

    def retrieve(self, scene: Scene) -> List[RankedPattern]:
        """Los 2K patrones más similares a la escena por embedding."""
        query = self.embedder.embed(scene_embedding_text(scene))
        candidates = top_k(query, self.patterns, key=lambda p: p.embedding, k=self.top_k * 2)
        return [RankedPattern(pattern=p, similarity=s) for p, s in candidates]

    def rerank(self, candidates: List[RankedPattern], scene: Scene) -> List[RankedPattern]:
        for candidate in candidates:
            candidate.score = (
                candidate.similarity * WEIGHT_SIMILARITY
                + semantic_relevance(candidate.pattern, scene) * WEIGHT_SEMANTIC
                + mood_alignment(candidate.pattern, scene) * WEIGHT_MOOD
                + keyword_overlap(candidate.pattern, scene) * WEIGHT_OVERLAP
            )
        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
        return ranked[:self.top_k]

    def refine(self, scene: Scene) -> VisualQueryBundle:
        """
        Calcula el bundle de queries de la escena. Nunca lanza: ante cualquier
        error devuelve el bundle de fallback.
        """
        try:
            matched = self.rerank(self.retrieve(scene), scene)
            logger.debug(
                f"Escena {scene.id}: patrones "
                + ", ".join(f"{m.pattern.id} ({m.score:.3f})" for m in matched)
            )

            pattern_keywords = [k for m in matched for k in m.pattern.keywords]
            pattern_queries = [q for m in matched for q in m.pattern.queries]
            refined = _unique(scene.keyword_list() + pattern_keywords)[:MAX_REFINED_KEYWORDS]

            queries = generate_queries(scene, pattern_queries)
            bundle = VisualQueryBundle(
                refined_keywords=refined,
                primary_query=select_best_query(queries, "primary", scene),
                secondary_query=select_best_query(queries, "secondary", scene),
                backup_queries=queries[2:6],
                matched_pattern_ids=[m.pattern.id for m in matched],
            )
            logger.info(f"Escena {scene.id}: '{bundle.primary_query}' / '{bundle.secondary_query}'")
            return bundle
        except Exception as e:
            logger.error(f"Error refinando queries de la escena {scene.id}: {e}")
            return fallback_bundle(scene)

    def refine_many(self, scenes: Sequence[Scene]) -> List[VisualQueryBundle]:
        return [self.refine(scene) for scene in scenes]
