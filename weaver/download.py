from __future__ import annotations

import re
import shutil
from pathlib import Path

from .state import ImageItem, ImageStatus

FALLBACK_NAME = "generated-image"
MAX_NAME_LENGTH = 50


def download_slug(prompt: str) -> str:
    """Filename stem for a prompt: ``"A Beautiful Sunset! (v2)"`` -> ``"a-beautiful-sunset-v2"``."""
    slug = re.sub(r"[^a-z0-9\s]", "", prompt.lower())
    slug = re.sub(r"\s+", "-", slug)
    return slug[:MAX_NAME_LENGTH] or FALLBACK_NAME


def download_name(item: ImageItem) -> str:
    ext = Path(item.result).suffix if item.result else ""
    return download_slug(item.prompt) + (ext or ".png")


def export_image(item: ImageItem, dest_dir: str | Path) -> Path:
    if item.status is not ImageStatus.SUCCESS or not item.result:
        raise ValueError(f"cannot export an image in status {item.status.value}")
    dest = Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)
    target = _unique_path(dest / download_name(item))
    shutil.copyfile(item.result, target)
    return target


def _unique_path(path: Path) -> Path:
    if not path.exists():
        return path
    n = 2
    while True:
        candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")
        if not candidate.exists():
            return candidate
        n += 1
