"""
Tipos de trabajo que se envían al scheduler.
"""
import logging
from typing import Any, Callable

from ..domain.models import FetchedAsset, Scene, VisualQueryBundle
from ..infrastructure.asset_resolver import AssetResolver
from .scheduler import ConversionTask, ProgressCallback

logger = logging.getLogger(__name__)


class AssetFetchTask(ConversionTask):
    """Resuelve el asset de una escena con su bundle de queries."""

    def __init__(self, scene: Scene, bundle: VisualQueryBundle, resolver: AssetResolver):
        self.scene = scene
        self.bundle = bundle
        self.resolver = resolver

    def run(self, report_progress: ProgressCallback) -> FetchedAsset:
        report_progress(10)
        asset = self.resolver.resolve(self.scene, self.bundle)
        report_progress(100)
        return asset

    def describe(self) -> str:
        return f"assets escena {self.scene.id} ({self.bundle.primary_query})"


class FunctionTask(ConversionTask):
    """Envuelve cualquier callable `report_progress -> resultado`."""

    def __init__(self, fn: Callable[[ProgressCallback], Any], label: str = "function"):
        self.fn = fn
        self.label = label

    def run(self, report_progress: ProgressCallback) -> Any:
        return self.fn(report_progress)

    def describe(self) -> str:
        return self.label
