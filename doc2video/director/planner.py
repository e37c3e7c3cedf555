"""
Planificador de escenas.
Convierte el texto extraído de un documento en una lista ordenada de escenas,
eligiendo la cantidad según el largo del documento.
"""
import hashlib
import logging
import math
import random
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..domain.models import MAX_SCENE_DURATION, MIN_SCENE_DURATION, Mood, Scene, ScenePlan
from ..errors import EmptyInputError, GenerationError
from ..llm.openrouter import load_prompts
from .parser import SceneResponseParser

logger = logging.getLogger(__name__)

MIN_SCENES = 5
MAX_SCENES = 20
TARGET_TOTAL_SECONDS = 90

GenerateFn = Callable[[str], str]

DEFAULT_SCENE_TEMPLATE = '''Using the following text, generate exactly {target_scenes} video-ready scenes.

TASK:
Create exactly {target_scenes} scenes and return ONLY valid JSON (array format).

Each scene must include:
- id (integer)
- title (short phrase)
- summary (1-2 sentences)
- narration (20-30 seconds of natural spoken-style text)
- on_screen_text (<= 6 words)
- visual_keywords (3-7 concrete VIDEO search terms, comma-separated)
- mood ("informative" | "inspirational" | "warm" | "corporate")
- duration_seconds (6-15)

RULES:
- Keep narration conversational, simple, and suitable for voiceover.
- Avoid abstract visuals unless paired with concrete actions or environments.
- The JSON must be valid and contain no explanation, no markdown, no comments.
- Focus on concrete, visual elements that can be found in stock video libraries.

INPUT TEXT:
"""
{source_content}
"""

RESPOND WITH ONLY THE JSON ARRAY:'''


@dataclass(frozen=True)
class SceneArchetype:
    """Plantilla de escena para el modo heurístico."""
    title: str
    on_screen_text: str
    mood: Mood
    visual_keywords: str
    lead_in: str


ARCHETYPES: List[SceneArchetype] = [
    SceneArchetype("Introduction", "Welcome", Mood.INFORMATIVE,
                   "office desk, laptop typing, business presentation, professional meeting",
                   "Welcome to this presentation. "),
    SceneArchetype("Overview", "Key Points", Mood.INFORMATIVE,
                   "data analysis, charts graphs, people discussing, whiteboard presentation",
                   "Let's examine the key points. "),
    SceneArchetype("Main Content", "Details", Mood.INFORMATIVE,
                   "focused work, detailed analysis, document review, concentrated reading",
                   "Here are the essential details. "),
    SceneArchetype("Key Insights", "Insights", Mood.INSPIRATIONAL,
                   "lightbulb moment, team collaboration, brainstorming session, creative thinking",
                   "These insights are particularly important. "),
    SceneArchetype("Implementation", "Action Steps", Mood.CORPORATE,
                   "task planning, project management, team coordination, goal setting",
                   "Now let's look at practical applications. "),
    SceneArchetype("Results", "Outcomes", Mood.WARM,
                   "success metrics, achievement celebration, progress tracking, positive results",
                   "The outcomes demonstrate that "),
    SceneArchetype("Conclusion", "Summary", Mood.CORPORATE,
                   "handshake agreement, satisfied team, successful completion, office celebration",
                   "In summary, we can see that "),
]


def count_words(text: str) -> int:
    return len(text.split())


def calculate_scene_count(word_count: int) -> int:
    """
    Cantidad de escenas según el largo del documento, acotada a [5, 20].

    <200 palabras → 5; <500 → ~80 palabras/escena; <1000 → ~100;
    <2000 → ~120; resto → ~150.
    """
    if word_count < 200:
        count = 5
    elif word_count < 500:
        count = math.ceil(word_count / 80)
    elif word_count < 1000:
        count = math.ceil(word_count / 100)
    elif word_count < 2000:
        count = math.ceil(word_count / 120)
    else:
        count = math.ceil(word_count / 150)
    return max(MIN_SCENES, min(MAX_SCENES, count))


def split_sentences(text: str) -> List[str]:
    """Oraciones con contenido (>20 caracteres); si no hay, todas las no vacías."""
    parts = [s.strip() for s in re.split(r"[.!?]+", text)]
    long_parts = [s for s in parts if len(s) > 20]
    return long_parts or [s for s in parts if s]


class ScenePlanner:
    """Genera el plan de escenas, con LLM si está disponible o con heurística."""

    def __init__(
        self,
        generate: Optional[GenerateFn] = None,
        parser: Optional[SceneResponseParser] = None,
        prompts_path: Optional[str] = None,
    ):
        """
        Args:
            generate: Capacidad de generación `prompt -> texto` (opcional)
            parser: Parser/validador de la respuesta del LLM
            prompts_path: YAML con `scene_template` (usa el default si falta)
        """
        self.generate = generate
        self.parser = parser or SceneResponseParser()
        prompts = load_prompts(prompts_path) if prompts_path else {}
        self.scene_template = prompts.get("scene_template") or DEFAULT_SCENE_TEMPLATE

    def build_prompt(self, text: str, target_scenes: int) -> str:
        return self.scene_template.format(target_scenes=target_scenes, source_content=text)

    def plan(self, document_text: str) -> ScenePlan:
        """
        Convierte el texto del documento en escenas.

        Raises:
            EmptyInputError: Si el texto no tiene contenido
        """
        if not document_text or not document_text.strip():
            raise EmptyInputError("El texto de entrada está vacío")

        text = document_text.strip()
        word_count = count_words(text)
        target = calculate_scene_count(word_count)
        logger.info(f"Documento: {word_count} palabras, {len(text)} caracteres → {target} escenas")

        if self.generate is not None:
            try:
                scenes = self._plan_with_llm(text, target)
                return ScenePlan(scenes=scenes, target_scene_count=target,
                                 word_count=word_count, strategy="llm")
            except GenerationError as e:
                logger.warning(f"Generación con LLM falló, usando heurística: {e}")
        else:
            logger.info("Sin capacidad de generación, usando heurística")

        scenes = self.generate_fallback_scenes(text, target)
        return ScenePlan(scenes=scenes, target_scene_count=target,
                         word_count=word_count, strategy="fallback")

    def _plan_with_llm(self, text: str, target: int) -> List[Scene]:
        prompt = self.build_prompt(text, target)
        try:
            response = self.generate(prompt)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"La llamada al LLM falló: {e}") from e

        result = self.parser.parse(response)
        scenes = result.unwrap()
        logger.info(f"LLM generó {len(scenes)} escenas (objetivo: {target})")
        return scenes

    def generate_fallback_scenes(self, text: str, target: int) -> List[Scene]:
        """
        Reparte las oraciones del texto entre arquetipos de escena rotativos.
        Determinista para un mismo texto.
        """
        sentences = split_sentences(text)
        per_scene = max(1, math.ceil(len(sentences) / target))
        base_duration = round(TARGET_TOTAL_SECONDS / target)
        rng = random.Random(hashlib.sha256(text.encode("utf-8")).hexdigest())

        scenes = []
        for i in range(target):
            archetype = ARCHETYPES[i % len(ARCHETYPES)]
            cycle = i // len(ARCHETYPES)
            content = ". ".join(sentences[i * per_scene:(i + 1) * per_scene])

            duration = round(base_duration + rng.uniform(-2, 2))
            duration = max(MIN_SCENE_DURATION, min(MAX_SCENE_DURATION, duration))

            title = archetype.title if cycle == 0 else f"{archetype.title} {cycle + 1}"
            scenes.append(Scene(
                id=i + 1,
                title=title,
                summary=self._summary(content, archetype.title),
                narration=self._narration(content, archetype.lead_in),
                on_screen_text=archetype.on_screen_text,
                visual_keywords=archetype.visual_keywords,
                mood=archetype.mood,
                duration_seconds=duration,
            ))

        total = sum(s.duration_seconds for s in scenes)
        logger.info(f"Heurística generó {len(scenes)} escenas ({total}s en total)")
        return scenes

    @staticmethod
    def _summary(content: str, archetype_title: str) -> str:
        words = content.split()[:25]
        ending = "..." if len(words) == 25 else "."
        return f"This {archetype_title.lower()} section covers: {' '.join(words)}{ending}"[:200]

    @staticmethod
    def _narration(content: str, lead_in: str) -> str:
        words = content.split()[:60]
        narration = (lead_in + " ".join(words)).strip()
        if not narration.endswith((".", "!", "?")):
            narration += "."
        return narration[:500]
