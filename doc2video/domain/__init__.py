"""Modelos de dominio."""

from .models import (
    AssetLibraryEntry,
    AssetOrigin,
    FetchedAsset,
    Mood,
    Scene,
    ScenePlan,
    VideoCandidate,
    VisualPattern,
    VisualQueryBundle,
)

__all__ = [
    "AssetLibraryEntry",
    "AssetOrigin",
    "FetchedAsset",
    "Mood",
    "Scene",
    "ScenePlan",
    "VideoCandidate",
    "VisualPattern",
    "VisualQueryBundle",
]
