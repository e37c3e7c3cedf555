"""Director: planificación de escenas y queries visuales."""

from .parser import SceneResponseParser
from .patterns import VisualPatternLibrary
from .planner import ScenePlanner, calculate_scene_count
from .visual_queries import VisualQueryRefiner

__all__ = [
    "SceneResponseParser",
    "VisualPatternLibrary",
    "ScenePlanner",
    "calculate_scene_count",
    "VisualQueryRefiner",
]
