"""
Scheduler de conversiones: cola por prioridad + pool acotado de workers.

Estados de un job: queued → processing → {completed, failed, cancelled}.
La admisión ocurre al enviar, al arrancar y cada vez que un job termina
(continuación, sin polling).
"""
import heapq
import itertools
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import SchedulerJobError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class JobPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    JobPriority.URGENT: 0,
    JobPriority.HIGH: 1,
    JobPriority.NORMAL: 2,
    JobPriority.LOW: 3,
}


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}


class ConversionTask(ABC):
    """Contrato de cualquier trabajo que el scheduler sabe ejecutar."""

    @abstractmethod
    def run(self, report_progress: ProgressCallback) -> Any:
        """Ejecuta el trabajo; puede reportar progreso 0-100."""

    def describe(self) -> str:
        return type(self).__name__


@dataclass
class ConversionJob:
    """Unidad de trabajo del scheduler."""
    id: str
    payload: ConversionTask
    priority: JobPriority = JobPriority.NORMAL
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None
    attempts: int = 0
    cancel_requested: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ConversionScheduler:
    """
    Cola de prioridad (urgent > high > normal > low, FIFO dentro de cada
    prioridad) con un máximo de `max_workers` jobs activos.
    """

    def __init__(
        self,
        max_workers: int = 3,
        max_retries: int = 0,
        retry_wait: float = 1.0,
        autostart: bool = True,
    ):
        """
        Args:
            max_workers: Jobs activos simultáneos
            max_retries: Reintentos de un job antes de marcarlo como fallido
            retry_wait: Espera base del backoff exponencial entre reintentos
            autostart: Si es False, los jobs esperan en cola hasta `start()`
        """
        if max_workers < 1:
            raise ValueError("max_workers debe ser >= 1")
        self.max_workers = max_workers
        self.max_retries = max_retries
        self.retry_wait = retry_wait

        self._cond = threading.Condition(threading.Lock())
        self._heap: List[Tuple[int, int, str]] = []
        self._sequence = itertools.count()
        self._jobs: Dict[str, ConversionJob] = {}
        self._active: Set[str] = set()
        self._started = autostart
        self._closed = False
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="conversion")

    def submit(self, payload: ConversionTask, priority: Union[JobPriority, str] = JobPriority.NORMAL) -> str:
        """Encola un trabajo y devuelve su id."""
        priority = JobPriority(priority)
        with self._cond:
            if self._closed:
                raise RuntimeError("El scheduler está cerrado")
            job_id = uuid.uuid4().hex[:12]
            self._jobs[job_id] = ConversionJob(id=job_id, payload=payload, priority=priority)
            heapq.heappush(self._heap, (priority.rank, next(self._sequence), job_id))
            logger.debug(f"Job {job_id} encolado ({priority.value}): {payload.describe()}")
            self._admit_locked()
        return job_id

    def start(self) -> None:
        with self._cond:
            self._started = True
            self._admit_locked()

    def _admit_locked(self) -> None:
        while self._started and not self._closed and self._heap and len(self._active) < self.max_workers:
            _, _, job_id = heapq.heappop(self._heap)
            job = self._jobs[job_id]
            job.status = JobStatus.PROCESSING
            job.started_at = datetime.now()
            self._active.add(job_id)
            logger.info(f"▶️ Job {job_id} en proceso ({job.priority.value}): {job.payload.describe()}")
            self._executor.submit(self._run, job)

    def _run(self, job: ConversionJob) -> None:
        def report_progress(value: int) -> None:
            with self._cond:
                job.progress = max(0, min(100, int(value)))

        result: Any = None
        failure: Optional[SchedulerJobError] = None
        try:
            retrying = Retrying(
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(multiplier=self.retry_wait, max=60),
                retry=retry_if_exception(lambda e: not job.cancel_requested),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            )
            for attempt in retrying:
                with attempt:
                    with self._cond:
                        job.attempts += 1
                    result = job.payload.run(report_progress)
        except Exception as e:
            failure = SchedulerJobError(job.id, str(e))

        with self._cond:
            self._active.discard(job.id)
            job.completed_at = datetime.now()
            if job.cancel_requested:
                job.status = JobStatus.CANCELLED
                logger.info(f"Job {job.id} cancelado, resultado descartado")
            elif failure is not None:
                job.status = JobStatus.FAILED
                job.error = failure.message
                logger.error(str(failure))
            else:
                job.status = JobStatus.COMPLETED
                job.progress = 100
                job.result = result
                logger.info(f"✅ Job {job.id} completado")
            self._admit_locked()
            self._cond.notify_all()

    def status(self, job_id: str) -> Optional[ConversionJob]:
        """Copia del estado actual del job, o None si no existe."""
        with self._cond:
            job = self._jobs.get(job_id)
            return replace(job) if job else None

    def cancel(self, job_id: str) -> bool:
        """
        Cancela un job.

        En cola se quita en el acto. Activo, se marca y termina como
        `cancelled` cuando su operación devuelve (no se interrumpe).

        Returns:
            False si el job no existe o ya terminó
        """
        with self._cond:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal or job.cancel_requested:
                return False

            if job.status == JobStatus.QUEUED:
                self._heap = [item for item in self._heap if item[2] != job_id]
                heapq.heapify(self._heap)
                job.status = JobStatus.CANCELLED
                job.completed_at = datetime.now()
                self._cond.notify_all()
                logger.info(f"Job {job_id} cancelado antes de empezar")
            else:
                job.cancel_requested = True
                logger.info(f"Job {job_id} marcado para cancelación")
            return True

    def statistics(self) -> Dict[str, int]:
        with self._cond:
            counts = {status: 0 for status in JobStatus}
            for job in self._jobs.values():
                counts[job.status] += 1
            return {
                "queued": counts[JobStatus.QUEUED],
                "processing": counts[JobStatus.PROCESSING],
                "completed": counts[JobStatus.COMPLETED],
                "failed": counts[JobStatus.FAILED],
                "cancelled": counts[JobStatus.CANCELLED],
                "total": len(self._jobs),
            }

    def jobs(self) -> List[ConversionJob]:
        with self._cond:
            return [replace(job) for job in self._jobs.values()]

    def wait(self, job_ids: Optional[Iterable[str]] = None, timeout: Optional[float] = None) -> bool:
        """
        Bloquea hasta que los jobs indicados (o todos) terminen.

        Returns:
            True si terminaron, False si venció el timeout
        """
        with self._cond:
            ids = list(job_ids) if job_ids is not None else list(self._jobs)
            return self._cond.wait_for(
                lambda: all(self._jobs[i].is_terminal for i in ids if i in self._jobs),
                timeout=timeout,
            )

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """
        Cierra el scheduler.

        Args:
            wait: Esperar a que se vacíen la cola y los jobs activos
            cancel_pending: Cancelar los jobs que siguen en cola

        Si el scheduler nunca arrancó, los jobs en cola se cancelan siempre.
        """
        with self._cond:
            if cancel_pending or not self._started:
                for _, _, job_id in self._heap:
                    job = self._jobs[job_id]
                    job.status = JobStatus.CANCELLED
                    job.completed_at = datetime.now()
                self._heap.clear()
            if wait and self._started:
                self._cond.wait_for(lambda: not self._heap and not self._active)
            self._closed = True
            self._cond.notify_all()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ConversionScheduler":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown(wait=True)
