"""
Files stage: copy verbatim files into the output directory, one at a time.
"""

import asyncio
import shutil
import time
from pathlib import Path

from staticforge.models import FileJob, StageResult
from staticforge.stages.base import Stage
from staticforge.utils import format_duration


def copy_path(source: Path, dest: Path) -> None:
    """Copy a file or directory tree, creating parent directories."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, dest, dirs_exist_ok=True)
    else:
        shutil.copy2(source, dest)


class CopyFilesStage(Stage):
    """Sequential copy of the file queue."""

    name = "process_files"

    def __init__(self, app, files: list[FileJob], logger=None):
        super().__init__(app, logger)
        self.files = files

    async def execute(self) -> StageResult:
        start_time = time.perf_counter()

        for job in self.files:
            await asyncio.to_thread(copy_path, job.source_path, job.dest_path)

        self.logger.info(
            f"Process files ({len(self.files)} files) - {format_duration(time.perf_counter() - start_time)}",
            extra={"stage": self.name, "event": "files_copied", "metadata": {"files": len(self.files)}},
        )

        return StageResult(
            stage_name=self.name,
            success=True,
            records_processed=len(self.files),
            output_files=[job.dest_path for job in self.files],
        )
