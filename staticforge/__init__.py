"""
staticforge - Static site build orchestrator

Sequences asset compilation, page data queries, HTML rendering and image
processing into one deterministic build, fanning CPU-heavy work out to
worker processes.
"""

__version__ = "0.1.0"


__all__ = ["App", "RunOptions", "build", "create_app", "load_config", "run_build"]

from .app import App, create_app
from .config import load_config
from .models import RunOptions
from .pipeline import build, run_build
