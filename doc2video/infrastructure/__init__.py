"""Infraestructura: fuentes de video, biblioteca de assets y resolución."""

from .asset_library import AssetLibrary
from .asset_resolver import AssetResolver
from .pexels import PexelsSource
from .pixabay import PixabaySource
from .sources import VideoSource, score_candidate, select_best_candidate

__all__ = [
    "AssetLibrary",
    "AssetResolver",
    "PexelsSource",
    "PixabaySource",
    "VideoSource",
    "score_candidate",
    "select_best_candidate",
]
