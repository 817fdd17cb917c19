import asyncio
import io
import logging
from pathlib import Path
from typing import Any, Optional

import pytest
from rich.console import Console

from staticforge.app import App
from staticforge.compiler import Compiler
from staticforge.config import BuildConfig
from staticforge.models import CompileResult, RunOptions
from staticforge.progress import ProgressReporter
from staticforge.workers import WorkerHandle


class FakeWorker(WorkerHandle):
    """In-process worker that records calls and tracks concurrency."""

    def __init__(self, kind: str, delay: float = 0.01, fail_on: Optional[set[int]] = None, error: Optional[Exception] = None):
        super().__init__(kind)
        self.delay = delay
        self.fail_on = set(fail_on or ())
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.completed = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.end_calls = 0

    async def call(self, operation: str, payload: dict[str, Any]) -> Any:
        index = len(self.calls)
        self.calls.append((operation, payload))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if index in self.fail_on:
                raise self.error or RuntimeError(f"chunk {index} failed")
            self.completed += 1
            return {"ok": True}
        finally:
            self.in_flight -= 1

    def end(self) -> None:
        self.end_calls += 1
        self.ended = True


class FakeWorkerFactory:
    """Creates FakeWorkers and keeps them for assertions."""

    def __init__(self):
        self.workers: list[FakeWorker] = []
        self.options: dict[str, dict[str, Any]] = {}

    def configure(self, kind: str, **kwargs: Any) -> None:
        self.options[kind] = kwargs

    def __call__(self, kind: str) -> FakeWorker:
        worker = FakeWorker(kind, **self.options.get(kind, {}))
        self.workers.append(worker)
        return worker

    def of_kind(self, kind: str) -> list[FakeWorker]:
        return [w for w in self.workers if w.kind == kind]


class FakeCompiler(Compiler):
    def __init__(self, hash: str = "abc123", events: Optional[list[str]] = None):
        self.hash = hash
        self.calls = 0
        self.events = events

    async def run(self) -> CompileResult:
        self.calls += 1
        if self.events is not None:
            self.events.append("compile")
        return CompileResult(hash=self.hash)


@pytest.fixture(autouse=True)
def reset_staticforge_logger():
    """Undo setup_logging() between tests so caplog sees records."""
    logger = logging.getLogger("staticforge")
    yield
    logger.handlers = []
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def site_dir(tmp_path) -> Path:
    site = tmp_path / "site"
    site.mkdir()
    return site


@pytest.fixture
def worker_factory() -> FakeWorkerFactory:
    return FakeWorkerFactory()


@pytest.fixture
def quiet_progress() -> ProgressReporter:
    return ProgressReporter(Console(file=io.StringIO(), force_terminal=False))


@pytest.fixture
def make_app(site_dir, worker_factory, quiet_progress):
    """Build an App for site_dir with fake workers and a fake compiler."""

    def _make(config: Optional[dict[str, Any]] = None, **overrides: Any) -> App:
        build_config = BuildConfig(site_dir, config or {})
        build_config.validate()
        overrides.setdefault("compiler", FakeCompiler())
        overrides.setdefault("worker_factory", worker_factory)
        overrides.setdefault("progress", quiet_progress)
        return App(site_dir, build_config, RunOptions(), **overrides)

    return _make
