"""
Orquestador central.
Coordina los subsistemas para convertir un documento en escenas con su
footage asignado: planificación → queries visuales → assets (vía scheduler).
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field, computed_field

from .config import Settings, get_settings
from .director.parser import SceneResponseParser
from .director.patterns import VisualPatternLibrary
from .director.planner import GenerateFn, ScenePlanner
from .director.visual_queries import VisualQueryRefiner
from .documents.reader import DocumentReader
from .domain.models import FetchedAsset, Scene, ScenePlan, VisualQueryBundle
from .infrastructure.asset_library import AssetLibrary
from .infrastructure.asset_resolver import AssetResolver
from .infrastructure.pexels import PexelsSource
from .infrastructure.pixabay import PixabaySource
from .infrastructure.sources import VideoSource
from .jobs.scheduler import ConversionScheduler, JobPriority, JobStatus
from .jobs.tasks import AssetFetchTask
from .llm.embeddings import EmbeddingProvider, build_embedding_provider
from .llm.openrouter import OpenRouterClient
from .llm.validator import SceneValidator
from .utils.cache import AssetStore

logger = logging.getLogger(__name__)


class SceneAssignment(BaseModel):
    """Una escena con sus queries y el asset que se le asignó."""
    scene: Scene
    bundle: VisualQueryBundle
    asset: FetchedAsset
    job_id: Optional[str] = None


class ConversionResult(BaseModel):
    """Resultado completo de convertir un documento."""
    document: Optional[str] = None
    plan: ScenePlan
    assignments: List[SceneAssignment]
    timings: Dict[str, float] = Field(default_factory=dict)
    scheduler_stats: Dict[str, int] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)

    @computed_field
    @property
    def total_duration(self) -> int:
        return self.plan.total_duration

    @computed_field
    @property
    def assets_found(self) -> int:
        return sum(1 for a in self.assignments if a.asset.success)


@dataclass
class BatchOutcome:
    path: str
    result: Optional[ConversionResult] = None
    error: Optional[str] = None


class DocumentVideoOrchestrator:
    """
    El 'Director de Orquesta'.
    Recibe texto (o un archivo) y coordina la producción de escenas + assets.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        generate: Optional[GenerateFn] = None,
        use_llm: bool = True,
        embedder: Optional[EmbeddingProvider] = None,
        primary_source: Optional[VideoSource] = None,
        secondary_source: Optional[VideoSource] = None,
    ):
        """
        Args:
            settings: Configuración (usa la global si no se proporciona)
            generate: Capacidad de generación; si falta y hay API key se usa OpenRouter
            use_llm: False fuerza el modo heurístico
            embedder: Proveedor de embeddings (por defecto según configuración)
            primary_source: Fuente primaria (por defecto Pexels)
            secondary_source: Fuente secundaria (por defecto Pixabay)
        """
        self.settings = settings or get_settings()
        self.use_llm = use_llm
        self.output_dir = Path(self.settings.output_dir)

        self._generate = generate
        self._embedder = embedder
        self._primary = primary_source
        self._secondary = secondary_source

        # Componentes lazy-loaded
        self._planner = None
        self._refiner = None
        self._library = None
        self._resolver = None
        self._scheduler = None
        self._reader = None

    @property
    def embedder(self) -> EmbeddingProvider:
        if self._embedder is None:
            self._embedder = build_embedding_provider(self.settings)
        return self._embedder

    @property
    def planner(self) -> ScenePlanner:
        if self._planner is None:
            generate = self._generate
            if generate is None and self.use_llm and self.settings.llm_api_key:
                generate = OpenRouterClient(self.settings).generate
            if not self.use_llm:
                generate = None
            parser = SceneResponseParser(SceneValidator(max_scenes=self.settings.max_generated_scenes))
            self._planner = ScenePlanner(
                generate=generate,
                parser=parser,
                prompts_path=self.settings.prompts_path,
            )
        return self._planner

    @property
    def refiner(self) -> VisualQueryRefiner:
        if self._refiner is None:
            patterns = VisualPatternLibrary.from_yaml(self.settings.visual_patterns_path, self.embedder)
            self._refiner = VisualQueryRefiner(patterns, self.embedder)
        return self._refiner

    @property
    def library(self) -> AssetLibrary:
        if self._library is None:
            self._library = AssetLibrary(
                AssetStore(self.settings.library_dir),
                self.embedder,
                similarity_threshold=self.settings.similarity_threshold,
            )
        return self._library

    @property
    def resolver(self) -> AssetResolver:
        if self._resolver is None:
            primary = self._primary or PexelsSource(api_key=self.settings.pexels_api_key)
            secondary = self._secondary or PixabaySource(api_key=self.settings.pixabay_api_key)
            self._resolver = AssetResolver(
                self.library,
                primary=primary,
                secondary=secondary,
                assets_dir=self.settings.assets_dir,
            )
        return self._resolver

    @property
    def scheduler(self) -> ConversionScheduler:
        if self._scheduler is None:
            self._scheduler = ConversionScheduler(
                max_workers=self.settings.max_workers,
                max_retries=self.settings.job_max_retries,
                retry_wait=self.settings.job_retry_wait,
            )
        return self._scheduler

    @property
    def reader(self) -> DocumentReader:
        if self._reader is None:
            self._reader = DocumentReader()
        return self._reader

    def produce(
        self,
        text: str,
        priority: Union[JobPriority, str] = JobPriority.NORMAL,
    ) -> ConversionResult:
        """
        Ejecuta el pipeline completo sobre un texto.

        Raises:
            InputError: Si el texto está vacío
        """
        timings: Dict[str, float] = {}
        started = time.perf_counter()

        plan = self.planner.plan(text)
        timings["planning"] = time.perf_counter() - started
        logger.info(f"Plan: {plan.scene_count} escenas ({plan.strategy}), {plan.total_duration}s")

        step = time.perf_counter()
        bundles = self.refiner.refine_many(plan.scenes)
        timings["visual_queries"] = time.perf_counter() - step

        step = time.perf_counter()
        job_ids = [
            self.scheduler.submit(AssetFetchTask(scene, bundle, self.resolver), priority)
            for scene, bundle in zip(plan.scenes, bundles)
        ]
        self.scheduler.wait(job_ids)
        timings["assets"] = time.perf_counter() - step

        assignments = [
            SceneAssignment(scene=scene, bundle=bundle, asset=self._job_asset(job_id, scene), job_id=job_id)
            for scene, bundle, job_id in zip(plan.scenes, bundles, job_ids)
        ]
        timings["total"] = time.perf_counter() - started

        result = ConversionResult(
            plan=plan,
            assignments=assignments,
            timings=timings,
            scheduler_stats=self.scheduler.statistics(),
        )
        logger.info(
            f"Conversión lista: {result.assets_found}/{len(assignments)} assets, "
            f"{timings['total']:.2f}s"
        )
        return result

    def _job_asset(self, job_id: str, scene: Scene) -> FetchedAsset:
        job = self.scheduler.status(job_id)
        if job is not None and job.status == JobStatus.COMPLETED and isinstance(job.result, FetchedAsset):
            return job.result
        if job is not None and job.status == JobStatus.FAILED:
            return FetchedAsset.failure(job.error or "Job fallido", scene_id=scene.id)
        return FetchedAsset.failure("Job cancelado", scene_id=scene.id)

    def produce_from_file(
        self,
        file_path: Union[str, Path],
        priority: Union[JobPriority, str] = JobPriority.NORMAL,
    ) -> ConversionResult:
        """
        Raises:
            ExtractionFailedError: Si no se pudo extraer texto del archivo
        """
        text = self.reader.read(file_path)
        result = self.produce(text, priority)
        result.document = str(file_path)
        return result

    def produce_batch(
        self,
        paths: Sequence[Union[str, Path]],
        priority: Union[JobPriority, str] = JobPriority.NORMAL,
    ) -> List[BatchOutcome]:
        """Procesa varios archivos; un fallo no detiene al resto."""
        outcomes = []
        for path in paths:
            try:
                outcomes.append(BatchOutcome(path=str(path), result=self.produce_from_file(path, priority)))
            except Exception as e:
                logger.error(f"Error procesando {path}: {e}")
                outcomes.append(BatchOutcome(path=str(path), error=str(e)))
        return outcomes

    def save_result(self, result: ConversionResult, output_dir: Optional[Union[str, Path]] = None) -> Path:
        """Guarda el log de procesamiento en JSON."""
        target_dir = Path(output_dir) if output_dir else self.output_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        stem = Path(result.document).stem if result.document else "text"
        path = target_dir / f"processing_log_{stem}_{result.created_at:%Y%m%d_%H%M%S}.json"
        path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Log de procesamiento guardado: {path}")
        return path

    def close(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=True)
        if self._library is not None:
            self._library.store.close()
        if self._resolver is not None:
            for source in (self._resolver.primary, self._resolver.secondary):
                if source is not None and hasattr(source, "close"):
                    source.close()
