"""Worker handles and the default worker modules."""

from staticforge.workers.base import WorkerHandle
from staticforge.workers.pool import (
    HTML_WRITER,
    IMAGE_PROCESSOR,
    WORKER_MODULES,
    InProcessWorker,
    ProcessWorker,
    create_worker,
    default_worker_count,
)

__all__ = [
    "HTML_WRITER",
    "IMAGE_PROCESSOR",
    "WORKER_MODULES",
    "InProcessWorker",
    "ProcessWorker",
    "WorkerHandle",
    "create_worker",
    "default_worker_count",
]
