"""
Data models shared across the build pipeline.

Jobs are plain dataclasses. Anything handed to a worker process goes through
to_dict() first so payloads stay serializable.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional


# Content hash used when cache busting is disabled
DEFAULT_HASH = "staticforge"


@dataclass(frozen=True)
class RunOptions:
    """
    Explicit run-mode flags for one build.

    Passed into create_app() and the pipeline instead of mutating
    process-wide environment variables.

    Attributes:
        mode: Build mode ("static" for a full static export)
        env: Environment name exposed to plugins and workers
        verbose: Enable debug logging
        use_workers: Dispatch to worker processes (False runs workers in-process)
        config_path: Explicit configuration file (default: <context>/staticforge.yaml)
    """
    mode: str = "static"
    env: str = "production"
    verbose: bool = False
    use_workers: bool = True
    config_path: Optional[Path] = None


@dataclass
class PageJob:
    """A page waiting to be rendered to HTML."""

    path: str
    html_output: Path
    data_output: Optional[Path] = None
    context: dict[str, Any] = field(default_factory=dict)
    route: dict[str, Any] = field(default_factory=dict)
    data: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a worker payload."""
        return {
            "path": self.path,
            "htmlOutput": str(self.html_output),
            "dataOutput": str(self.data_output) if self.data_output else None,
            "context": self.context,
            "route": self.route,
            "data": self.data,
        }


@dataclass
class FileJob:
    """A file copied verbatim into the output directory."""

    source_path: Path
    dest_path: Path


@dataclass
class ImageJob:
    """An image that must be transformed by the image worker."""

    source_path: Path
    dest_path: Path
    transform: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a worker payload."""
        return {
            "filePath": str(self.source_path),
            "destPath": str(self.dest_path),
            "options": self.transform,
        }


@dataclass
class AssetQueue:
    """
    Files and images collected before the build core runs.

    Populated by plugins during app creation; read-only to the stages.
    """

    files: list[FileJob] = field(default_factory=list)
    images: list[ImageJob] = field(default_factory=list)

    def add_file(self, source_path: Path, dest_path: Path) -> FileJob:
        job = FileJob(Path(source_path), Path(dest_path))
        self.files.append(job)
        return job

    def add_image(
        self,
        source_path: Path,
        dest_path: Path,
        transform: Optional[dict[str, Any]] = None,
    ) -> ImageJob:
        job = ImageJob(Path(source_path), Path(dest_path), dict(transform or {}))
        self.images.append(job)
        return job


@dataclass
class CompileResult:
    """Result returned by the asset compiler. Only `hash` is required."""

    hash: str
    duration_seconds: float = 0.0
    assets: list[str] = field(default_factory=list)


@dataclass
class StageResult:
    """Result of stage execution."""

    stage_name: str
    success: bool
    duration_seconds: float = 0.0
    records_processed: int = 0
    output_files: list[Path] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "stage_name": self.stage_name,
            "success": self.success,
            "duration_seconds": self.duration_seconds,
            "records_processed": self.records_processed,
            "output_files": [str(f) for f in self.output_files],
            "metadata": self.metadata,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


@dataclass
class BuildResult:
    """Summary of a complete build run."""

    success: bool
    started_at: datetime
    ended_at: datetime
    duration_seconds: float
    hash: Optional[str] = None
    pages: int = 0
    redirects: list[Any] = field(default_factory=list)
    stages: dict[str, StageResult] = field(default_factory=dict)
    error_message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "hash": self.hash,
            "pages": self.pages,
            "redirects": self.redirects,
            "stages": {name: result.to_dict() for name, result in self.stages.items()},
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BuildResult":
        """Deserialize from dictionary. Stage details are not restored."""
        return cls(
            success=data["success"],
            started_at=datetime.fromisoformat(data["started_at"]),
            ended_at=datetime.fromisoformat(data["ended_at"]),
            duration_seconds=data["duration_seconds"],
            hash=data.get("hash"),
            pages=data.get("pages", 0),
            redirects=data.get("redirects", []),
            error_message=data.get("error_message"),
        )
