"""
Base classes for build stages.

All stages inherit from Stage and return StageResult. Unlike a best-effort
pipeline, a failing stage raises: the exception is logged with stage context
and propagates to the orchestrator after cleanup() has run.
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from staticforge.models import StageResult
from staticforge.utils import get_logger
from staticforge.workers import WorkerHandle

if TYPE_CHECKING:
    from staticforge.app import App


class Stage(ABC):
    """
    Abstract base class for build stages.

    Each stage must implement:
    - execute(): Run the stage
    Optionally:
    - validate(): Check prerequisites before execution
    - cleanup(): Release resources; runs on success and on failure
    """

    name = "stage"

    def __init__(self, app: "App", logger: Optional[logging.Logger] = None):
        """
        Initialize stage.

        Args:
            app: Application object for the current build
            logger: Logger instance (default: staticforge.stages)
        """
        self.app = app
        self.config = app.config
        self.logger = logger or get_logger("stages")

    def validate(self) -> None:
        """
        Validate stage prerequisites.

        Raises:
            Exception: If validation fails
        """
        pass

    @abstractmethod
    async def execute(self) -> StageResult:
        """
        Execute the stage.

        Returns:
            StageResult with execution details

        Raises:
            Exception: If execution fails
        """
        pass

    def cleanup(self) -> None:
        """
        Clean up resources after stage execution.

        Override if stage needs cleanup.
        """
        pass

    async def run(self) -> StageResult:
        """
        Run the complete stage lifecycle.

        Returns:
            StageResult with execution details

        Raises:
            Exception: Whatever validate() or execute() raised
        """
        self.logger.debug(
            f"Starting stage: {self.name}",
            extra={"stage": self.name, "event": "stage_started"},
        )

        started_at = datetime.now(timezone.utc)
        start_time = time.perf_counter()

        try:
            self.validate()

            result = await self.execute()
            result.started_at = started_at
            result.ended_at = datetime.now(timezone.utc)
            result.duration_seconds = time.perf_counter() - start_time

            self.logger.debug(
                f"Stage {self.name} completed",
                extra={
                    "stage": self.name,
                    "event": "stage_completed",
                    "metadata": {
                        "duration_seconds": result.duration_seconds,
                        "records_processed": result.records_processed,
                    },
                },
            )
            return result

        except Exception as e:
            self.logger.debug(
                f"Stage {self.name} failed with exception: {e}",
                extra={
                    "stage": self.name,
                    "event": "stage_exception",
                    "metadata": {"exception": str(e)},
                },
                exc_info=True,
            )
            raise

        finally:
            try:
                self.cleanup()
            except Exception as e:
                self.logger.warning(
                    f"Stage {self.name} cleanup failed: {e}",
                    extra={"stage": self.name, "event": "cleanup_failed"},
                )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


class WorkerStage(Stage):
    """
    Stage that owns exactly one worker session.

    The session is opened in execute() and ended exactly once: either
    explicitly after a successful dispatch, or by cleanup() on failure.
    """

    worker_kind = ""

    def __init__(self, app: "App", logger: Optional[logging.Logger] = None):
        super().__init__(app, logger)
        self.worker: Optional[WorkerHandle] = None

    def open_worker(self) -> WorkerHandle:
        if self.worker is not None:
            raise RuntimeError(f"Stage {self.name} already owns a worker")
        self.worker = self.app.create_worker(self.worker_kind)
        return self.worker

    def end_worker(self) -> None:
        worker, self.worker = self.worker, None
        if worker is not None:
            worker.end()

    def cleanup(self) -> None:
        self.end_worker()
