"""
Compile stage: run the asset compiler and capture its build hash.
"""

import time
from typing import Optional

from staticforge.models import CompileResult, StageResult
from staticforge.stages.base import Stage
from staticforge.utils import format_duration


class CompileStage(Stage):
    """Runs app.compiler and times it. The result is kept on the stage."""

    name = "compile"

    def __init__(self, app, logger=None):
        super().__init__(app, logger)
        self.compile_result: Optional[CompileResult] = None

    async def execute(self) -> StageResult:
        start_time = time.perf_counter()

        # Interactive terminals get the compiler's own progress output
        if not self.app.progress.console.is_terminal:
            self.logger.info("Compiling assets...", extra={"stage": self.name, "event": "compile_started"})

        self.compile_result = await self.app.compiler.run()

        duration = time.perf_counter() - start_time
        self.logger.info(
            f"Compile assets - {format_duration(duration)}",
            extra={
                "stage": self.name,
                "event": "compile_completed",
                "metadata": {"hash": self.compile_result.hash, "duration_seconds": duration},
            },
        )

        return StageResult(
            stage_name=self.name,
            success=True,
            metadata={"hash": self.compile_result.hash},
        )
