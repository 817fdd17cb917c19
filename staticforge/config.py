"""
Configuration management for staticforge builds.

Loads and validates the staticforge.yaml file of a site. Relative paths are
resolved against the site context (root) directory.
"""

import copy
from pathlib import Path
from typing import Any, Optional

import yaml

from staticforge.errors import ConfigError

CONFIG_FILENAME = "staticforge.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "output_dir": "dist",
    "static_dir": "static",
    "html_template": "src/index.html",
    "empty_output_dir": True,
    "cache_busting": True,
    "prefetch": True,
    "preload": True,
    "render_concurrency": None,
    "images": {
        "remove_unused": False,
        "default_quality": 75,
    },
    "compiler": {
        "command": None,
    },
    "plugins": [],
    "pages": [],
    "assets": {
        "files": [],
        "images": [],
    },
    "workers": {},
    "logging": {
        "level": "INFO",
        "format": "pretty",
        "console": True,
        "output": None,
    },
}


class ImagesConfig:
    """Image processing options. Forwarded verbatim to the image worker."""

    def __init__(self, data: dict[str, Any]):
        self.remove_unused = bool(data.get("remove_unused", False))
        self.default_quality = int(data.get("default_quality", 75))
        self.extra = {k: v for k, v in data.items() if k not in ["remove_unused", "default_quality"]}

    def to_dict(self) -> dict[str, Any]:
        return {
            "remove_unused": self.remove_unused,
            "default_quality": self.default_quality,
            **self.extra,
        }

    def __repr__(self) -> str:
        return f"ImagesConfig(remove_unused={self.remove_unused}, default_quality={self.default_quality})"


class BuildConfig:
    """Complete, resolved build configuration. Read-only during a run."""

    def __init__(self, context: Path, data: Optional[dict[str, Any]] = None, config_path: Optional[Path] = None):
        self.context = Path(context).resolve()
        self.config_path = config_path
        self.raw_config = _merge(DEFAULT_CONFIG, data or {})
        raw = self.raw_config

        # Output layout
        self.output_dir = self._path(raw["output_dir"])
        self.images_dir = self._path(raw.get("images_dir") or self.output_dir / "assets" / "static")
        self.data_dir = self._path(raw.get("data_dir") or self.output_dir / "assets" / "data")
        self.manifests_dir = self._path(raw.get("manifests_dir") or self.output_dir / "manifest")
        self.static_dir = self._path(raw["static_dir"])

        # Rendering
        self.html_template = self._path(raw["html_template"])
        self.client_manifest_path = self._path(
            raw.get("client_manifest_path") or self.manifests_dir / "client.json"
        )
        self.server_bundle_path = self._path(
            raw.get("server_bundle_path") or self.manifests_dir / "server.json"
        )
        self.prefetch = bool(raw["prefetch"])
        self.preload = bool(raw["preload"])
        self.render_concurrency = raw.get("render_concurrency")

        # Behavior
        self.empty_output_dir = bool(raw["empty_output_dir"])
        self.cache_busting = bool(raw["cache_busting"])

        if not isinstance(raw["images"], dict):
            raise ConfigError("'images' must be a mapping")
        self.images = ImagesConfig(raw["images"])

        self.compiler = raw.get("compiler") or {}
        self.plugins = raw.get("plugins") or []
        self.pages = raw.get("pages") or []
        self.assets = raw.get("assets") or {}
        self.workers = raw.get("workers") or {}
        self.logging = raw.get("logging") or {}

    def _path(self, value: Any) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.context / path

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path, if file logging is configured."""
        output = self.logging.get("output")
        return self._path(output) if output else None

    def get_log_level(self) -> str:
        """Get logging level."""
        return str(self.logging.get("level", "INFO")).upper()

    def get_log_format(self) -> str:
        """Get log format (structured or pretty)."""
        return self.logging.get("format", "pretty")

    def should_log_to_console(self) -> bool:
        """Check if console logging is enabled."""
        return bool(self.logging.get("console", True))

    def get_state_file(self) -> Path:
        """Path of the last-build summary."""
        return self.context / ".staticforge" / "state.json"

    def validate(self) -> None:
        """Validate entire configuration."""
        if self.output_dir == self.context:
            raise ConfigError("output_dir must not be the project root")

        if self.render_concurrency is not None:
            if not isinstance(self.render_concurrency, int) or self.render_concurrency < 1:
                raise ConfigError(
                    f"render_concurrency must be a positive integer, got {self.render_concurrency!r}"
                )

        if not isinstance(self.plugins, list):
            raise ConfigError("'plugins' must be a list")

        if not isinstance(self.pages, list):
            raise ConfigError("'pages' must be a list")

        for index, page in enumerate(self.pages):
            if not isinstance(page, dict) or "path" not in page:
                raise ConfigError(f"pages[{index}] must be a mapping with a 'path'")

        if not isinstance(self.workers, dict):
            raise ConfigError("'workers' must be a mapping of worker kind to module")

        if self.get_log_format() not in ("pretty", "structured"):
            raise ConfigError(f"Unknown logging format: {self.get_log_format()}")

    def __repr__(self) -> str:
        return f"BuildConfig(context={self.context}, output_dir={self.output_dir})"


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into base; nested mappings are merged one level deep."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = {**base[key], **value}
        else:
            merged[key] = value
    return merged


def _load_yaml(config_path: Path) -> dict[str, Any]:
    """Load and parse YAML configuration file."""
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping")
    return config


def load_config(context: Path, config_path: Optional[Path] = None) -> BuildConfig:
    """
    Load build configuration for a site.

    Args:
        context: Site root directory
        config_path: Explicit config file. Defaults to <context>/staticforge.yaml,
                     which may be absent (defaults apply).

    Returns:
        Validated BuildConfig

    Raises:
        ConfigError: If config is invalid, or an explicit config file is missing
    """
    context = Path(context).expanduser().resolve()

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")
        data = _load_yaml(config_path)
    else:
        default_path = context / CONFIG_FILENAME
        config_path = default_path if default_path.exists() else None
        data = _load_yaml(default_path) if config_path else {}

    config = BuildConfig(context, data, config_path=config_path)
    config.validate()
    return config


def write_default_config(context: Path, force: bool = False) -> Path:
    """
    Write a default staticforge.yaml into a site directory.

    Raises:
        FileExistsError: If the file exists and force is False
    """
    config_path = Path(context) / CONFIG_FILENAME
    if config_path.exists() and not force:
        raise FileExistsError(f"Config already exists at {config_path}. Use --force to overwrite.")

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False))
    return config_path
