"""
Modelos de Dominio (Clean Architecture)
Definen la estructura de datos central del sistema.
"""
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_SCENE_DURATION = 6
MAX_SCENE_DURATION = 15
DEFAULT_SCENE_DURATION = 10

MIN_QUERY_LENGTH = 3
MAX_QUERY_LENGTH = 25
MAX_REFINED_KEYWORDS = 8

_KEYWORD_SPLIT = re.compile(r"[,;\s]+")


class Mood(str, Enum):
    """Tono narrativo de una escena."""
    INFORMATIVE = "informative"
    INSPIRATIONAL = "inspirational"
    WARM = "warm"
    CORPORATE = "corporate"


def split_keywords(text: str) -> List[str]:
    """Separa un string de keywords en tokens útiles (> 2 caracteres)."""
    return [k for k in _KEYWORD_SPLIT.split(text.lower()) if len(k) > 2]


class Scene(BaseModel):
    """
    Una unidad atómica de narrativa audiovisual.
    Se crea una vez en el planner y no cambia después.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    title: str
    summary: str
    narration: str = Field(..., min_length=1, description="Texto hablado de la escena")
    on_screen_text: str = Field("", description="Texto en pantalla (máx 6 palabras)")
    visual_keywords: str = Field("", description="Keywords libres para buscar el clip")
    mood: Mood = Mood.INFORMATIVE
    duration_seconds: int = Field(DEFAULT_SCENE_DURATION, ge=MIN_SCENE_DURATION, le=MAX_SCENE_DURATION)

    @field_validator("on_screen_text")
    @classmethod
    def _max_six_words(cls, value: str) -> str:
        if len(value.split()) > 6:
            raise ValueError("on_screen_text admite como máximo 6 palabras")
        return value

    def keyword_list(self) -> List[str]:
        return split_keywords(self.visual_keywords)


class ScenePlan(BaseModel):
    """El plan completo de escenas para un documento."""
    scenes: List[Scene]
    target_scene_count: int
    word_count: int
    strategy: str = "fallback"

    @property
    def total_duration(self) -> int:
        return sum(s.duration_seconds for s in self.scenes)

    @property
    def scene_count(self) -> int:
        return len(self.scenes)


class VisualPattern(BaseModel):
    """Entrada de la base de conocimiento visual (solo lectura durante la ejecución)."""
    id: str
    keywords: List[str]
    mood: str
    embedding: List[float] = Field(default_factory=list)
    queries: List[str] = Field(default_factory=list)


class VisualQueryBundle(BaseModel):
    """Queries de búsqueda derivadas de exactamente una escena."""
    model_config = ConfigDict(frozen=True)

    refined_keywords: List[str] = Field(default_factory=list, max_length=MAX_REFINED_KEYWORDS)
    primary_query: str = Field(..., min_length=MIN_QUERY_LENGTH, max_length=MAX_QUERY_LENGTH)
    secondary_query: str = Field(..., min_length=MIN_QUERY_LENGTH, max_length=MAX_QUERY_LENGTH)
    backup_queries: List[str] = Field(default_factory=list)
    matched_pattern_ids: List[str] = Field(default_factory=list)


class VideoCandidate(BaseModel):
    """Un resultado de búsqueda de una fuente externa."""
    provider: str
    video_id: str
    page_url: str
    download_url: str
    duration: float = 0.0
    width: int = 0
    height: int = 0


class AssetLibraryEntry(BaseModel):
    """Asset descargado previamente y registrado para reutilización."""
    id: str
    source_url: str
    local_path: str
    origin_query: str
    source: str
    duration_seconds: float = 0.0
    width: int = 0
    height: int = 0
    keywords: List[str] = Field(default_factory=list)
    embedding: List[float] = Field(default_factory=list)
    usage_count: int = Field(1, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AssetOrigin(str, Enum):
    """De dónde salió el asset entregado a una escena."""
    LIBRARY = "library"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    FALLBACK = "fallback"


class FetchedAsset(BaseModel):
    """Resultado de resolver el asset de una escena."""
    success: bool
    source: AssetOrigin
    asset_path: Optional[str] = None
    asset_url: Optional[str] = None
    duration: Optional[float] = None
    dimensions: Optional[Dict[str, int]] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None

    @model_validator(mode="after")
    def _failure_has_no_asset(self) -> "FetchedAsset":
        if not self.success:
            if self.asset_path is not None:
                raise ValueError("Un asset fallido no puede tener asset_path")
            if self.error is None and self.source != AssetOrigin.FALLBACK:
                raise ValueError("Un asset fallido sin error debe venir de 'fallback'")
        return self

    @classmethod
    def fallback(cls, scene_id: int, reason: str) -> "FetchedAsset":
        """Marcador para usar una diapositiva/placeholder en vez de footage."""
        return cls(
            success=False,
            source=AssetOrigin.FALLBACK,
            metadata={
                "reason": reason,
                "scene_id": scene_id,
                "suggested_action": "Use text-based slide or placeholder video",
            },
        )

    @classmethod
    def failure(cls, error: str, scene_id: Optional[int] = None) -> "FetchedAsset":
        metadata = {"scene_id": scene_id} if scene_id is not None else {}
        return cls(success=False, source=AssetOrigin.FALLBACK, error=error, metadata=metadata)
