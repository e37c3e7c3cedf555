"""
Validador de escenas generadas por el LLM.
Coerciona cada campo a un valor seguro en lugar de rechazar la escena.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..domain.models import (
    DEFAULT_SCENE_DURATION,
    MAX_SCENE_DURATION,
    MIN_SCENE_DURATION,
    Mood,
    Scene,
)
from ..errors import GenerationError, NoScenesProducedError, ValidationError

logger = logging.getLogger(__name__)

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")

# campo → (largo máximo, fallback); el título usa "Scene N"
STRING_FIELDS = {
    "title": (50, None),
    "summary": (200, "Scene description"),
    "narration": (500, "Scene narration text"),
    "on_screen_text": (30, "Text"),
    "visual_keywords": (200, "office, business, professional"),
}

MAX_ON_SCREEN_WORDS = 6


@dataclass
class SceneParseResult:
    """Resultado etiquetado: escenas válidas o el error que lo impidió."""
    scenes: list[Scene] = field(default_factory=list)
    issues: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[GenerationError] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None and bool(self.scenes)

    def __bool__(self):
        return self.is_valid

    def unwrap(self) -> list[Scene]:
        """Devuelve las escenas o lanza el error guardado."""
        if self.error is not None:
            raise self.error
        return self.scenes

    @classmethod
    def failed(cls, error: GenerationError, issues: Optional[list[ValidationError]] = None) -> "SceneParseResult":
        issues = issues or []
        return cls(issues=issues, warnings=[str(i) for i in issues], error=error)


def coerce_string(value: Any, fallback: str, max_length: int) -> str:
    """String recortado y truncado, o el fallback si no es un string útil."""
    if not isinstance(value, str) or not value.strip():
        return fallback
    return value.strip()[:max_length]


def coerce_mood(value: Any) -> Mood:
    if isinstance(value, str):
        try:
            return Mood(value.strip().lower())
        except ValueError:
            pass
    return Mood.INFORMATIVE


def coerce_duration(value: Any) -> int:
    """Entero en [6, 15] o la duración por defecto (10)."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_SCENE_DURATION
    if isinstance(value, float):
        if not math.isfinite(value):
            return DEFAULT_SCENE_DURATION
        number = int(value)
    elif isinstance(value, int):
        number = value
    else:
        match = _INT_PREFIX.match(str(value))
        if not match:
            return DEFAULT_SCENE_DURATION
        number = int(match.group(1))
    if number < MIN_SCENE_DURATION or number > MAX_SCENE_DURATION:
        return DEFAULT_SCENE_DURATION
    return number


def _is_usable_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


class SceneValidator:
    """Validador/normalizador de escenas crudas (dicts) producidas por el LLM."""

    def __init__(self, max_scenes: int = 20):
        """
        Args:
            max_scenes: Máximo de escenas a conservar (se descartan las sobrantes)
        """
        self.max_scenes = max_scenes

    @staticmethod
    def _coerce_id(value: Any, position: int, used: set[int]) -> int:
        if isinstance(value, int) and not isinstance(value, bool) and value >= 1 and value not in used:
            return value
        if position not in used:
            return position
        return max(used) + 1

    def _validate_one(self, raw: Any, position: int, used: set[int], issues: list[ValidationError]) -> Scene:
        if not isinstance(raw, dict):
            issues.append(ValidationError(f"Escena {position}: no es un objeto, se usan valores por defecto"))
            raw = {}

        def note(field_name: str, original: Any, fixed: Any) -> None:
            issues.append(ValidationError(
                f"Escena {position}: '{field_name}' inválido ({original!r}), se usa {fixed!r}"
            ))

        original_id = raw.get("id")
        scene_id = self._coerce_id(original_id, position, used)
        if original_id is not None and scene_id != original_id:
            note("id", original_id, scene_id)
        used.add(scene_id)

        values: dict[str, Any] = {"id": scene_id}
        for name, (max_length, fallback) in STRING_FIELDS.items():
            original = raw.get(name)
            candidate = original
            if name == "on_screen_text" and _is_usable_string(original):
                candidate = " ".join(original.split()[:MAX_ON_SCREEN_WORDS])
            fixed = coerce_string(candidate, fallback or f"Scene {position}", max_length)
            if name == "on_screen_text":
                fixed = " ".join(fixed.split()[:MAX_ON_SCREEN_WORDS])
            if not _is_usable_string(original):
                note(name, original, fixed)
            values[name] = fixed

        mood = coerce_mood(raw.get("mood"))
        if raw.get("mood") != mood.value:
            note("mood", raw.get("mood"), mood.value)
        values["mood"] = mood

        duration = coerce_duration(raw.get("duration_seconds"))
        if raw.get("duration_seconds") != duration:
            note("duration_seconds", raw.get("duration_seconds"), duration)
        values["duration_seconds"] = duration

        return Scene(**values)

    def validate(self, items: Any) -> SceneParseResult:
        """
        Valida una lista de escenas crudas. Nunca lanza excepciones.

        Args:
            items: Lista de dicts tal como salen del JSON del LLM

        Returns:
            SceneParseResult con las escenas normalizadas o el error
        """
        if not isinstance(items, list):
            return SceneParseResult.failed(GenerationError("La respuesta no contiene una lista de escenas"))

        issues: list[ValidationError] = []
        scenes: list[Scene] = []
        used_ids: set[int] = set()

        for position, raw in enumerate(items, start=1):
            try:
                scenes.append(self._validate_one(raw, position, used_ids, issues))
            except Exception as e:
                issues.append(ValidationError(f"Escena {position} descartada: {e}"))

        if not scenes:
            return SceneParseResult.failed(NoScenesProducedError("No se generó ninguna escena válida"), issues)

        if len(scenes) > self.max_scenes:
            issues.append(ValidationError(
                f"Demasiadas escenas ({len(scenes)}), se conservan las primeras {self.max_scenes}"
            ))
            scenes = scenes[:self.max_scenes]

        for issue in issues:
            logger.warning(str(issue))

        return SceneParseResult(scenes=scenes, issues=issues, warnings=[str(i) for i in issues])
