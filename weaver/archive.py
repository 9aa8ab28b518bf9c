from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import List

from .download import export_image
from .state import ImageStatus, SessionSnapshot

logger = logging.getLogger(__name__)


def run(snapshot: SessionSnapshot, outdir: str | Path) -> Path:
    out = Path(outdir)
    out.mkdir(parents=True, exist_ok=True)

    # dump article
    if snapshot.article_text:
        (out / "article.txt").write_text(snapshot.article_text, encoding="utf-8")

    # copy finished images under their download names
    exported: List[str] = []
    images_dir = out / "images"
    records = []
    for im in snapshot.items:
        record = im.to_dict()
        if im.status is ImageStatus.SUCCESS and im.result and Path(im.result).exists():
            target = export_image(im, images_dir)
            record["file"] = str(target.relative_to(out))
            exported.append(str(target))
        records.append(record)

    # dump prompts with their outcome
    (out / "prompts.json").write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")

    logger.info("Archived %d prompts and %d images under %s", len(records), len(exported), out)
    return out


def zip_outdir(outdir: str | Path) -> str:
    out = Path(outdir)
    if not out.exists():
        return ""
    zip_path = Path(str(out) + ".zip")
    if zip_path.exists():
        zip_path.unlink()
    shutil.make_archive(str(out), "zip", root_dir=str(out))
    return str(zip_path)
