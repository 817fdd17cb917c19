"""
Render stage: write every page in the render queue to HTML.

The queue is split into chunks of HTML_CHUNK_SIZE pages and all chunks are
sent to a single html-writer worker at once. Setting render_concurrency in
the config bounds how many chunks are in flight.
"""

import asyncio
import time
from typing import Any

from staticforge.concurrency import chunk, map_limited
from staticforge.errors import WorkerDispatchError
from staticforge.models import PageJob, StageResult
from staticforge.stages.base import WorkerStage
from staticforge.utils import format_duration
from staticforge.workers import HTML_WRITER

# Pages per worker message
HTML_CHUNK_SIZE = 350


class RenderHtmlStage(WorkerStage):
    """Render pages through the html-writer worker."""

    name = "render_html"
    worker_kind = HTML_WRITER

    def __init__(self, app, queue: list[PageJob], hash: str, chunk_size: int = HTML_CHUNK_SIZE, logger=None):
        super().__init__(app, logger)
        self.queue = queue
        self.hash = hash
        self.chunk_size = chunk_size

    def _payload(self, pages: list[PageJob]) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "pages": [page.to_dict() for page in pages],
            "htmlTemplate": str(self.config.html_template),
            "clientManifestPath": str(self.config.client_manifest_path),
            "serverBundlePath": str(self.config.server_bundle_path),
            "prefetch": self.config.prefetch,
            "preload": self.config.preload,
            "mode": self.app.options.mode,
            "env": self.app.options.env,
        }

    async def execute(self) -> StageResult:
        start_time = time.perf_counter()
        worker = self.open_worker()
        chunks = list(enumerate(chunk(self.queue, self.chunk_size)))

        async def dispatch(item: tuple[int, list[PageJob]]) -> Any:
            index, pages = item
            try:
                return await worker.render(self._payload(pages))
            except Exception as e:
                raise WorkerDispatchError(self.worker_kind, "render", str(e), chunk_index=index) from e

        limit = self.config.render_concurrency
        if limit:
            await map_limited(chunks, dispatch, limit)
        else:
            await asyncio.gather(*(dispatch(item) for item in chunks))

        self.end_worker()

        duration = time.perf_counter() - start_time
        self.logger.info(
            f"Render HTML ({len(self.queue)} files) - {format_duration(duration)}",
            extra={
                "stage": self.name,
                "event": "render_completed",
                "metadata": {"pages": len(self.queue), "chunks": len(chunks)},
            },
        )

        return StageResult(
            stage_name=self.name,
            success=True,
            records_processed=len(self.queue),
            output_files=[page.html_output for page in self.queue],
            metadata={"chunks": len(chunks)},
        )
