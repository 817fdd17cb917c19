"""
Static stage: merge the static directory into the output directory.

Symbolic links are dereferenced, so the output holds real files.
"""

import asyncio
import shutil
import time

from staticforge.models import StageResult
from staticforge.stages.base import Stage
from staticforge.utils import format_duration


class CopyStaticStage(Stage):
    """Copy config.static_dir into config.output_dir if it exists."""

    name = "copy_static"

    async def execute(self) -> StageResult:
        static_dir = self.config.static_dir
        if not static_dir.is_dir():
            return StageResult(stage_name=self.name, success=True, metadata={"skipped": True})

        start_time = time.perf_counter()
        await asyncio.to_thread(
            shutil.copytree,
            static_dir,
            self.config.output_dir,
            symlinks=False,
            dirs_exist_ok=True,
        )

        self.logger.info(
            f"Copy static files - {format_duration(time.perf_counter() - start_time)}",
            extra={"stage": self.name, "event": "static_copied", "metadata": {"static_dir": str(static_dir)}},
        )
        return StageResult(stage_name=self.name, success=True)
