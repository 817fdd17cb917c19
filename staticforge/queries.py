"""
Page data resolution.

Runs before rendering: each page whose route names a query gets its data
resolved by the matching data source, and the result is written as a JSON
file the client can fetch on navigation.
"""

import inspect
import json
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from staticforge.errors import StaticforgeError
from staticforge.models import PageJob
from staticforge.utils import format_duration, get_logger

if TYPE_CHECKING:
    from staticforge.app import App

logger = get_logger("queries")


class QueryExecutor(ABC):
    """Resolves data for pages in the render queue."""

    @abstractmethod
    async def execute(self, queue: list[PageJob], app: "App", hash: str) -> None:
        """
        Annotate queue entries with resolved data. Must finish before rendering.

        Raises:
            Exception: If any query fails
        """
        pass


def data_file_for(data_dir: Path, page_path: str) -> Path:
    """Map a page path to its data file, e.g. /blog/a/ -> <data_dir>/blog/a/index.json."""
    parts = [p for p in page_path.strip("/").split("/") if p]
    return data_dir.joinpath(*parts, "index.json")


class DataFileQueryExecutor(QueryExecutor):
    """
    Resolve page data from registered data sources and write data files.

    A page opts in with route metadata {"query": "<source name>"}; the
    source is called with the page context. Pages that already carry data
    keep it and still get a data file.
    """

    async def execute(self, queue: list[PageJob], app: "App", hash: str) -> None:
        start_time = time.perf_counter()
        written = 0

        for page in queue:
            query = page.route.get("query")
            if query:
                source = app.data_sources.get(query)
                if source is None:
                    raise StaticforgeError(f"Page {page.path} uses unknown query '{query}'")
                data = source(page.context)
                if inspect.isawaitable(data):
                    data = await data
                page.data = data

            if page.data is None:
                continue

            page.data_output = data_file_for(app.config.data_dir, page.path)
            page.data_output.parent.mkdir(parents=True, exist_ok=True)
            page.data_output.write_text(
                json.dumps({"hash": hash, "data": page.data}, default=str),
                encoding="utf-8",
            )
            written += 1

        logger.info(
            f"Execute queries ({written} data files) - {format_duration(time.perf_counter() - start_time)}",
            extra={"event": "queries_executed", "metadata": {"pages": len(queue), "data_files": written}},
        )
