from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# searches for .env in CWD/parents
load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    api_key: Optional[str]
    text_model: str
    image_model: str
    prompt_count: int
    outdir: str
    timeout: float
    log_level: str
    log_file: str


def get_api_key() -> Optional[str]:
    key = os.getenv("GEMINI_API_KEY")
    if key:
        return key
    # Optional: read from ~/.config/gemini/api_key
    cfg_path = Path.home() / ".config" / "gemini" / "api_key"
    if cfg_path.exists():
        return cfg_path.read_text().strip() or None
    return None


def load_settings() -> Settings:
    return Settings(
        api_key=get_api_key(),
        text_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        image_model=os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
        prompt_count=max(1, int(os.getenv("WEAVER_PROMPT_COUNT", "5"))),
        outdir=os.getenv("WEAVER_OUTDIR") or default_outdir(),
        timeout=float(os.getenv("WEAVER_TIMEOUT", "180")),
        log_level=os.getenv("WEAVER_LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("WEAVER_LOG_FILE", ""),
    )


def default_outdir() -> str:
    return f"artifacts/run_{datetime.now().strftime('%Y%m%d_%H%M%S')}"


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or load_settings()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
