"""
Build pipeline orchestrator.

Runs one full static build as a strict sequence: every step finishes before
the next one starts. Only the render and image stages fan out, each to its
own worker session.

    beforeBuild hook -> empty output -> compile -> render queue + redirects
    -> queries -> render HTML -> copy files -> process images -> copy static
    -> afterBuild hook -> remove manifests -> flush warnings

Any exception aborts the run and propagates to the caller; there is no
partial-success result.
"""

import asyncio
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from staticforge.app import App, create_app
from staticforge.config import BuildConfig, load_config
from staticforge.hooks import AFTER_BUILD, BEFORE_BUILD, REDIRECTS
from staticforge.models import DEFAULT_HASH, BuildResult, RunOptions, StageResult
from staticforge.stages import (
    CompileStage,
    CopyFilesStage,
    CopyStaticStage,
    ProcessImagesStage,
    RenderHtmlStage,
)
from staticforge.utils import empty_dir, format_duration, get_logger, remove_path, setup_logging

logger = get_logger("pipeline")


class Pipeline:
    """
    Main build orchestrator.

    Owns stage ordering and the worker sessions' lifetimes (through the
    stages), and writes a summary of the run to the state file.
    """

    def __init__(self, app: App):
        """
        Initialize pipeline.

        Args:
            app: Application object created for this run
        """
        self.app = app
        self.config = app.config

    async def run(self) -> BuildResult:
        """
        Run every build step in order.

        Returns:
            BuildResult of the successful run (also stored on app.result)

        Raises:
            Exception: The first failure of any step
        """
        app = self.app
        config = self.config

        started_at = datetime.now(timezone.utc)
        start_time = time.perf_counter()
        stages: dict[str, StageResult] = {}
        hash: Optional[str] = None

        logger.debug(
            f"Starting build for {app.context}",
            extra={
                "event": "build_started",
                "metadata": {"context": str(app.context), "mode": app.options.mode, "env": app.options.env},
            },
        )

        try:
            await app.hooks.run(BEFORE_BUILD, {"context": app.context, "config": config})

            if config.empty_output_dir:
                await asyncio.to_thread(empty_dir, config.output_dir)

            compile_stage = CompileStage(app)
            stages[compile_stage.name] = await compile_stage.run()
            hash = compile_stage.compile_result.hash if config.cache_busting else DEFAULT_HASH

            queue = app.create_render_queue()
            redirects = await app.hooks.fold(REDIRECTS, [], queue)

            await app.query_executor.execute(queue, app, hash)

            for stage in (
                RenderHtmlStage(app, queue, hash),
                CopyFilesStage(app, app.assets.files),
                ProcessImagesStage(app, app.assets.images),
                CopyStaticStage(app),
            ):
                stages[stage.name] = await stage.run()

            await app.hooks.run(
                AFTER_BUILD,
                {"context": app.context, "config": config, "queue": queue, "redirects": redirects},
            )

            await asyncio.to_thread(remove_path, config.manifests_dir)

        except Exception as e:
            logger.error(
                f"Build failed: {e}",
                extra={"event": "build_failed", "metadata": {"exception": str(e)}},
            )
            self._save_state(
                BuildResult(
                    success=False,
                    started_at=started_at,
                    ended_at=datetime.now(timezone.utc),
                    duration_seconds=time.perf_counter() - start_time,
                    hash=hash,
                    stages=stages,
                    error_message=str(e),
                )
            )
            raise

        app.log_all_warnings()

        duration = time.perf_counter() - start_time
        logger.info(
            f"Done in {format_duration(duration)}",
            extra={"event": "build_completed", "metadata": {"duration_seconds": duration, "pages": len(queue)}},
        )

        result = BuildResult(
            success=True,
            started_at=started_at,
            ended_at=datetime.now(timezone.utc),
            duration_seconds=duration,
            hash=hash,
            pages=len(queue),
            redirects=list(redirects),
            stages=stages,
        )
        self._save_state(result)
        app.result = result
        return result

    def _save_state(self, result: BuildResult) -> None:
        """
        Save build summary to disk.

        Args:
            result: Build result to save
        """
        state_file = self.config.get_state_file()

        try:
            state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(state_file, "w") as f:
                json.dump(result.to_dict(), f, indent=2, default=str)

            logger.debug(
                f"Saved build state to {state_file}",
                extra={"event": "state_saved", "metadata": {"file": str(state_file)}},
            )

        except (OSError, TypeError) as e:
            logger.warning(
                f"Could not save build state: {e}",
                extra={"event": "state_save_failed", "metadata": {"error": str(e)}},
            )


def configure_logging(config: BuildConfig, options: RunOptions) -> None:
    """Set up the staticforge logger from the logging section of the config."""
    setup_logging(
        config.get_log_file_path(),
        "DEBUG" if options.verbose else config.get_log_level(),
        config.get_log_format(),
        config.should_log_to_console(),
    )


async def build(
    context: Path,
    options: Optional[RunOptions] = None,
    *,
    setup_logs: bool = True,
    **overrides: Any,
) -> App:
    """
    Run a complete static build.

    Args:
        context: Site root directory
        options: Run options (default: production static build)
        setup_logs: Configure logging from the site config first
        **overrides: App collaborators to replace (see create_app)

    Returns:
        The App of the run, with app.result set

    Raises:
        Exception: The first failure of any step
    """
    options = options or RunOptions()
    config = overrides.pop("config", None) or load_config(context, options.config_path)

    if setup_logs:
        configure_logging(config, options)

    app = await create_app(context, options, config=config, **overrides)
    await Pipeline(app).run()
    return app


def run_build(context: Path, options: Optional[RunOptions] = None, **kwargs: Any) -> App:
    """Synchronous entry point for build()."""
    return asyncio.run(build(context, options, **kwargs))


def load_status(context: Path, config_path: Optional[Path] = None) -> Optional[BuildResult]:
    """
    Get the summary of the last build.

    Returns:
        BuildResult from the last run, or None if there is none
    """
    config = load_config(context, config_path)
    state_file = config.get_state_file()

    if not state_file.exists():
        return None

    try:
        with open(state_file, "r") as f:
            return BuildResult.from_dict(json.load(f))
    except (OSError, ValueError, KeyError) as e:
        logger.warning(f"Could not load build state: {e}")
        return None
