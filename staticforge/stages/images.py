"""
Images stage: transform every queued image with the image-processor worker.

The queue is sent in chunks of IMAGE_CHUNK_SIZE images, with at most one
chunk per logical CPU in flight. A progress line tracks completed chunks.
On success, images left over from a previous build are reconciled.
"""

import asyncio
import os
import time
from typing import Any, Optional

from staticforge.concurrency import chunk, map_limited
from staticforge.errors import WorkerDispatchError
from staticforge.models import ImageJob, StageResult
from staticforge.progress import percent
from staticforge.stages.base import WorkerStage
from staticforge.stages.reconcile import (
    RemovalReport,
    find_unused_images,
    read_existing_images,
    remove_unused_images,
)
from staticforge.utils import format_duration
from staticforge.workers import IMAGE_PROCESSOR

# Images per worker message
IMAGE_CHUNK_SIZE = 25


def logical_cpus() -> int:
    return os.cpu_count() or 1


class ProcessImagesStage(WorkerStage):
    """Process images through the image-processor worker, then prune unused ones."""

    name = "process_images"
    worker_kind = IMAGE_PROCESSOR

    def __init__(
        self,
        app,
        images: list[ImageJob],
        chunk_size: int = IMAGE_CHUNK_SIZE,
        concurrency: Optional[int] = None,
        logger=None,
    ):
        super().__init__(app, logger)
        self.images = images
        self.chunk_size = chunk_size
        self.concurrency = concurrency or logical_cpus()
        self.existing_images: set[str] = set()
        self.removal: Optional[RemovalReport] = None

    def _payload(self, queue: list[ImageJob]) -> dict[str, Any]:
        return {
            "queue": [job.to_dict() for job in queue],
            "context": str(self.config.context),
            "imagesConfig": self.config.images.to_dict(),
            "mode": self.app.options.mode,
            "env": self.app.options.env,
        }

    async def execute(self) -> StageResult:
        start_time = time.perf_counter()
        progress = self.app.progress
        chunks = list(enumerate(chunk(self.images, self.chunk_size)))
        total_assets = len(self.images)
        total_jobs = len(chunks)

        # Must be captured before the worker writes anything
        if not self.config.empty_output_dir:
            self.existing_images = await asyncio.to_thread(read_existing_images, self.config.images_dir)

        worker = self.open_worker()
        done = 0

        progress.write_line(f"Processing images ({total_assets} images) - 0%")

        async def dispatch(item: tuple[int, list[ImageJob]]) -> Any:
            nonlocal done
            index, queue = item
            try:
                result = await worker.process(self._payload(queue))
            except Exception as e:
                raise WorkerDispatchError(self.worker_kind, "process", str(e), chunk_index=index) from e

            done += 1
            progress.write_line(
                f"Processing images ({total_assets} images) - {percent(done, total_jobs)}%"
            )
            return result

        await map_limited(chunks, dispatch, self.concurrency)

        self.end_worker()

        duration = time.perf_counter() - start_time
        progress.finish(f"Process images ({total_assets} images) - {format_duration(duration)}")
        self.logger.debug(
            f"Processed {total_assets} images in {total_jobs} chunks",
            extra={
                "stage": self.name,
                "event": "images_processed",
                "metadata": {"images": total_assets, "chunks": total_jobs, "concurrency": self.concurrency},
            },
        )

        await self._remove_unused()

        return StageResult(
            stage_name=self.name,
            success=True,
            records_processed=total_assets,
            output_files=[job.dest_path for job in self.images],
            metadata={
                "chunks": total_jobs,
                "removed_images": len(self.removal.removed) if self.removal else 0,
            },
        )

    async def _remove_unused(self) -> None:
        if not self.config.images.remove_unused or not self.existing_images:
            return

        unused = find_unused_images(self.existing_images, self.images)
        if not unused:
            return

        self.removal = await asyncio.to_thread(
            remove_unused_images, self.config.images_dir, unused, self.logger
        )

        for name, error in self.removal.failed.items():
            self.app.warn(f"Could not remove unused image {name}: {error}")

        if self.removal.removed:
            self.logger.info(
                f"- Removed {len(self.removal.removed)} images that were no longer in use",
                extra={
                    "stage": self.name,
                    "event": "unused_images_removed",
                    "metadata": {"images": self.removal.removed},
                },
            )

    def cleanup(self) -> None:
        super().cleanup()
        if self.app.progress.active:
            self.app.progress.finish()
