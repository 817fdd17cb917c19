"""
Application object for one build.

create_app() loads configuration and plugins, then runs the createPages hook
so that plugins can add pages, files and images. The resulting App is handed
to the build pipeline, which treats everything on it as read-only input.

Plugins are modules exposing `register(api, options)`:

    # my_plugin.py
    def register(api, options):
        api.add_page("/about/", html="<h1>About</h1>")
        api.on("afterBuild", lambda payload: ...)
"""

import importlib
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

from staticforge.compiler import CommandCompiler, Compiler, NullCompiler
from staticforge.config import BuildConfig, load_config
from staticforge.errors import ConfigError
from staticforge.hooks import CREATE_PAGES, HookRegistry
from staticforge.models import AssetQueue, PageJob, RunOptions
from staticforge.progress import ProgressReporter
from staticforge.queries import DataFileQueryExecutor, QueryExecutor
from staticforge.utils import get_logger, print_warning
from staticforge.workers import WorkerHandle, create_worker

logger = get_logger("app")

RenderQueueBuilder = Callable[["App"], list[PageJob]]
WorkerFactory = Callable[[str], WorkerHandle]


def normalize_page_path(path: str) -> str:
    """Ensure a page path starts and ends with a slash."""
    parts = [p for p in str(path).split("/") if p]
    return "/" + "/".join(parts) + ("/" if parts else "")


def html_output_for(output_dir: Path, page_path: str) -> Path:
    """Map /blog/a/ to <output>/blog/a/index.html."""
    parts = [p for p in page_path.strip("/").split("/") if p]
    return output_dir.joinpath(*parts, "index.html")


def create_render_queue(app: "App") -> list[PageJob]:
    """
    Build the render queue from the app's pages.

    Duplicate paths keep the first definition and add a warning.
    """
    queue: list[PageJob] = []
    seen: set[str] = set()

    for page in app.pages:
        path = normalize_page_path(page["path"])
        if path in seen:
            app.warn(f"Duplicate page path {path} ignored")
            continue
        seen.add(path)

        context = dict(page.get("context") or {})
        if "html" in page:
            context["html"] = page["html"]

        route = {k: v for k, v in page.items() if k not in ["path", "html", "context", "data"]}

        queue.append(
            PageJob(
                path=path,
                html_output=html_output_for(app.config.output_dir, path),
                context=context,
                route=route,
                data=page.get("data"),
            )
        )

    return queue


class PluginAPI:
    """Surface handed to plugin register() functions."""

    def __init__(self, app: "App", plugin: str):
        self.app = app
        self.plugin = plugin

    @property
    def config(self) -> BuildConfig:
        return self.app.config

    @property
    def context(self) -> Path:
        return self.app.context

    def on(self, hook: str, fn: Callable[..., Any]) -> Callable[..., Any]:
        return self.app.hooks.tap(hook, fn)

    def add_page(self, path: str, **fields: Any) -> None:
        self.app.pages.append({"path": path, **fields})

    def add_file(self, source_path: Path, dest_path: Path) -> None:
        self.app.assets.add_file(self.context / source_path, self.config.output_dir / dest_path)

    def add_image(self, source_path: Path, dest_path: Path, **transform: Any) -> None:
        self.app.assets.add_image(self.context / source_path, self.config.images_dir / dest_path, transform)

    def add_data_source(self, name: str, fn: Callable[[dict], Any]) -> None:
        self.app.data_sources[name] = fn

    def warn(self, message: str) -> None:
        self.app.warn(f"[{self.plugin}] {message}")


class App:
    """Everything a build run needs, created once per run."""

    def __init__(
        self,
        context: Path,
        config: BuildConfig,
        options: Optional[RunOptions] = None,
        compiler: Optional[Compiler] = None,
        query_executor: Optional[QueryExecutor] = None,
        render_queue_builder: Optional[RenderQueueBuilder] = None,
        worker_factory: Optional[WorkerFactory] = None,
        progress: Optional[ProgressReporter] = None,
    ):
        self.context = Path(context)
        self.config = config
        self.options = options or RunOptions()
        self.hooks = HookRegistry()
        self.compiler = compiler or self._default_compiler()
        self.query_executor = query_executor or DataFileQueryExecutor()
        self.render_queue_builder = render_queue_builder or create_render_queue
        self.worker_factory = worker_factory
        self.progress = progress or ProgressReporter()
        self.assets = AssetQueue()
        self.pages: list[dict[str, Any]] = [dict(page) for page in config.pages]
        self.data_sources: dict[str, Callable[[dict], Any]] = {}
        self.warnings: list[str] = []
        self.result = None

        self._load_config_assets()

    def _default_compiler(self) -> Compiler:
        command = self.config.compiler.get("command")
        if command:
            return CommandCompiler(
                command,
                cwd=self.context,
                manifest_path=self.config.client_manifest_path,
            )
        return NullCompiler({"mode": self.options.mode, "pages": self.config.pages})

    def _load_config_assets(self) -> None:
        for entry in self.config.assets.get("files") or []:
            self.assets.add_file(self.context / entry["source"], self.config.output_dir / entry["dest"])

        for entry in self.config.assets.get("images") or []:
            transform = {k: v for k, v in entry.items() if k not in ["source", "dest"]}
            self.assets.add_image(
                self.context / entry["source"],
                self.config.images_dir / entry["dest"],
                transform,
            )

    def load_plugins(self) -> None:
        """Import configured plugins and call their register(api, options)."""
        for entry in self.config.plugins:
            if isinstance(entry, str):
                name, options = entry, {}
            elif isinstance(entry, dict) and "use" in entry:
                name, options = entry["use"], entry.get("options") or {}
            else:
                raise ConfigError(f"Invalid plugin entry: {entry!r}")

            try:
                module = importlib.import_module(name)
            except ImportError as e:
                raise ConfigError(f"Plugin '{name}' could not be imported: {e}") from e

            register = getattr(module, "register", None)
            if register is None or not callable(register):
                raise ConfigError(f"Plugin '{name}' does not define register(api, options)")

            register(PluginAPI(self, name), options)
            logger.debug(
                f"Loaded plugin {name}",
                extra={"event": "plugin_loaded", "metadata": {"plugin": name}},
            )

    def create_render_queue(self) -> list[PageJob]:
        return self.render_queue_builder(self)

    def create_worker(self, kind: str) -> WorkerHandle:
        """Create a worker session for one stage."""
        if self.worker_factory is not None:
            return self.worker_factory(kind)
        return create_worker(
            kind,
            modules=self.config.workers,
            in_process=not self.options.use_workers,
        )

    def warn(self, message: str) -> None:
        """Record a non-fatal warning, shown at the end of the build."""
        self.warnings.append(message)

    def log_all_warnings(self) -> None:
        """Flush collected warnings to the console and the log."""
        for message in self.warnings:
            print_warning(message)
            logger.warning(message, extra={"event": "build_warning"})
        self.warnings.clear()

    def __repr__(self) -> str:
        return f"App(context={self.context}, pages={len(self.pages)}, mode={self.options.mode})"


async def create_app(
    context: Path,
    options: Optional[RunOptions] = None,
    config: Optional[BuildConfig] = None,
    **overrides: Any,
) -> App:
    """
    Create the application object for a build.

    Args:
        context: Site root directory
        options: Run options (default: production static build)
        config: Pre-loaded configuration (default: load from context)
        **overrides: App collaborators to replace (compiler, query_executor,
                     render_queue_builder, worker_factory, progress)

    Returns:
        App with plugins loaded and createPages hooks applied
    """
    options = options or RunOptions()
    context = Path(context).expanduser().resolve()
    config = config or load_config(context, options.config_path)

    app = App(context, config, options, **overrides)
    app.load_plugins()

    await app.hooks.run(CREATE_PAGES, PluginAPI(app, CREATE_PAGES))

    return app
