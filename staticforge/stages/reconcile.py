"""
Unused image reconciliation.

Images written by a previous build stay in the images directory when the
output directory is not emptied. After a successful image stage, anything
that was present before the build and is not produced by the current image
queue is removed. Identity is the file's base name.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from staticforge.models import ImageJob
from staticforge.utils import remove_path


@dataclass
class RemovalReport:
    """Outcome of removing unused images."""

    removed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def read_existing_images(images_dir: Path) -> set[str]:
    """Snapshot the names in the images directory. Missing directory is empty."""
    if not images_dir.is_dir():
        return set()
    return {entry.name for entry in images_dir.iterdir()}


def find_unused_images(existing: set[str], queue: list[ImageJob]) -> set[str]:
    """Names present before the build that the current queue does not produce."""
    produced = {Path(job.dest_path).name for job in queue}
    return existing - produced


def remove_unused_images(
    images_dir: Path,
    names: set[str],
    logger: logging.Logger,
) -> RemovalReport:
    """
    Delete each name from the images directory.

    A failed deletion is recorded and logged; the remaining names are still
    removed.
    """
    report = RemovalReport()

    for name in sorted(names):
        try:
            remove_path(images_dir / name)
        except OSError as e:
            report.failed[name] = str(e)
            logger.warning(
                f"Could not remove unused image {name}: {e}",
                extra={"event": "image_remove_failed", "metadata": {"image": name, "error": str(e)}},
            )
        else:
            report.removed.append(name)

    return report
