"""
Image processor worker.

Operation `process` receives a batch of image jobs and writes each
destination image with Pillow, resizing to the requested width and
re-encoding by destination extension. Runs inside a worker process.
"""

import shutil
from pathlib import Path
from typing import Any

from PIL import Image

DEFAULT_QUALITY = 75


def _target_size(width: int, height: int, max_width: int) -> tuple[int, int]:
    if not max_width or width <= max_width:
        return width, height
    return max_width, max(1, round(height * max_width / width))


def process_image(
    src: Path,
    dst: Path,
    options: dict[str, Any],
    images_config: dict[str, Any],
) -> None:
    """Resize and save one image. Unsupported formats are copied as-is."""
    dst.parent.mkdir(parents=True, exist_ok=True)

    ext = dst.suffix.lower().lstrip(".")
    if ext in {"svg", "gif"}:
        shutil.copyfile(src, dst)
        return

    quality = int(options.get("quality", images_config.get("default_quality", DEFAULT_QUALITY)))

    with Image.open(src) as im:
        width, height = im.size
        target_w, target_h = _target_size(width, height, int(options.get("width", 0) or 0))
        if (target_w, target_h) != (width, height):
            im = im.resize((target_w, target_h), resample=Image.Resampling.LANCZOS)

        if ext in {"jpg", "jpeg"}:
            im.convert("RGB").save(dst, format="JPEG", quality=quality, optimize=True)
        elif ext == "png":
            im.save(dst, format="PNG", optimize=True)
        elif ext == "webp":
            im.save(dst, format="WEBP", quality=quality)
        else:
            im.save(dst)


def process(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Process a batch of images.

    Args:
        payload: {queue, context, imagesConfig}; relative source paths are
                 resolved against context

    Returns:
        {"processed": number of images written}
    """
    context = Path(payload.get("context") or ".")
    images_config = payload.get("imagesConfig") or {}

    for job in payload["queue"]:
        src = Path(job["filePath"])
        if not src.is_absolute():
            src = context / src
        process_image(src, Path(job["destPath"]), job.get("options") or {}, images_config)

    return {"processed": len(payload["queue"])}
