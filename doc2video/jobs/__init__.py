"""Jobs: scheduler de conversiones y tipos de trabajo."""

from .scheduler import ConversionJob, ConversionScheduler, ConversionTask, JobPriority, JobStatus
from .tasks import AssetFetchTask, FunctionTask

__all__ = [
    "ConversionJob",
    "ConversionScheduler",
    "ConversionTask",
    "JobPriority",
    "JobStatus",
    "AssetFetchTask",
    "FunctionTask",
]
