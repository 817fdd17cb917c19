"""
Worker pool - out-of-process workers behind WorkerHandle.

Worker kinds map to importable modules. Every RPC runs
invoke(module, operation, payload) in a process pool, so operations must be
module-level functions taking and returning picklable values.

Worker kinds:
- html-writer: staticforge.workers.html_writer (render)
- image-processor: staticforge.workers.image_processor (process)
"""

import asyncio
import importlib
import os
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Optional

from staticforge.utils import get_logger
from staticforge.workers.base import WorkerHandle

logger = get_logger("workers")

HTML_WRITER = "html-writer"
IMAGE_PROCESSOR = "image-processor"

WORKER_MODULES: dict[str, str] = {
    HTML_WRITER: "staticforge.workers.html_writer",
    IMAGE_PROCESSOR: "staticforge.workers.image_processor",
}


def default_worker_count() -> int:
    """One process per logical CPU, leaving one for the orchestrator."""
    cpu_count = os.cpu_count() or 2
    return max(1, cpu_count - 1)


def invoke(module_name: str, operation: str, payload: dict[str, Any]) -> Any:
    """
    Resolve and call a worker operation. Runs inside the worker process.

    Raises:
        ValueError: If the module does not export the operation
    """
    module = importlib.import_module(module_name)
    fn = getattr(module, operation, None)
    if fn is None or not callable(fn):
        raise ValueError(f"Worker module {module_name} has no operation '{operation}'")
    return fn(payload)


class ProcessWorker(WorkerHandle):
    """Worker backed by a ProcessPoolExecutor."""

    def __init__(self, kind: str, module_name: str, max_workers: Optional[int] = None):
        super().__init__(kind)
        self.module_name = module_name
        self.max_workers = max_workers or default_worker_count()
        self._pool = ProcessPoolExecutor(max_workers=self.max_workers)

    async def call(self, operation: str, payload: dict[str, Any]) -> Any:
        self._check_open()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._pool, invoke, self.module_name, operation, payload
        )

    def end(self) -> None:
        if self.ended:
            return
        self.ended = True
        self._pool.shutdown(wait=False, cancel_futures=True)
        logger.debug(
            f"Worker {self.kind} ended",
            extra={"event": "worker_ended", "metadata": {"kind": self.kind}},
        )


class InProcessWorker(WorkerHandle):
    """Runs worker operations on threads of the current process."""

    def __init__(self, kind: str, module_name: str):
        super().__init__(kind)
        self.module_name = module_name

    async def call(self, operation: str, payload: dict[str, Any]) -> Any:
        self._check_open()
        return await asyncio.to_thread(invoke, self.module_name, operation, payload)

    def end(self) -> None:
        self.ended = True


def create_worker(
    kind: str,
    *,
    modules: Optional[dict[str, str]] = None,
    in_process: bool = False,
    max_workers: Optional[int] = None,
) -> WorkerHandle:
    """
    Create a worker handle for a worker kind.

    Args:
        kind: Worker kind (e.g., "html-writer")
        modules: Overrides for the kind -> module registry
        in_process: Run operations in threads instead of worker processes
        max_workers: Process count (default: logical CPUs - 1)

    Returns:
        A new WorkerHandle owned by the caller

    Raises:
        ValueError: If the worker kind is unknown
    """
    registry = {**WORKER_MODULES, **(modules or {})}
    module_name = registry.get(kind)
    if module_name is None:
        raise ValueError(f"Unknown worker kind: {kind}")

    logger.debug(
        f"Creating worker {kind} ({'in-process' if in_process else 'process pool'})",
        extra={"event": "worker_created", "metadata": {"kind": kind, "module": module_name}},
    )

    if in_process:
        return InProcessWorker(kind, module_name)
    return ProcessWorker(kind, module_name, max_workers=max_workers)
