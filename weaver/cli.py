from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from . import archive
from .config import configure_logging, load_settings
from .session import Session

logger = logging.getLogger(__name__)


async def run_session(session: Session, article_text: str, *, more: int = 0, generate: bool = True) -> None:
    await session.submit_article(article_text)
    for _ in range(more):
        if session.snapshot().error:
            break
        await session.generate_more()
    if generate:
        await session.generate_all()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Blog Image Weaver: article → prompts → images")
    parser.add_argument("--article", type=str, required=True, help="Path to the article text ('-' for stdin)")
    parser.add_argument("--more", type=int, default=0, help="Extra rounds of 'generate more' prompts")
    parser.add_argument("--generate", action=argparse.BooleanOptionalAction, default=True, help="Generate images for all prompts")
    parser.add_argument("--outdir", type=str, default="", help="Output directory (optional)")
    parser.add_argument("--zip", action="store_true", help="Also write <outdir>.zip")
    args = parser.parse_args(argv)

    settings = load_settings()
    if args.outdir:
        settings.outdir = args.outdir
    configure_logging(settings)

    if args.article == "-":
        article_text = sys.stdin.read()
    else:
        article_path = Path(args.article)
        if not article_path.exists():
            raise SystemExit(f"Article file not found: {article_path}")
        article_text = article_path.read_text(encoding="utf-8")

    if not settings.api_key:
        logger.warning("GEMINI_API_KEY not set; using offline placeholders")

    session = Session.with_gemini(settings)
    asyncio.run(run_session(session, article_text, more=args.more, generate=args.generate))

    snap = session.snapshot()
    outdir = archive.run(snap, settings.outdir)
    for i, im in enumerate(snap.items):
        print(f"[{i}] {im.status.value:<9} {im.prompt}")
    if snap.error:
        print(f"Error: {snap.error}", file=sys.stderr)
    print(f"Artifacts saved under: {outdir}")
    if args.zip:
        print(f"Zip: {archive.zip_outdir(outdir)}")
    return 1 if snap.error else 0


if __name__ == "__main__":
    sys.exit(main())
