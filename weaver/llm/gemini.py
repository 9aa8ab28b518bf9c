from __future__ import annotations

import asyncio
import base64
import json
import logging
import re
import textwrap
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..config import Settings, load_settings
from ..errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)


def call_gemini(kind: str, *, settings: Optional[Settings] = None, **kwargs) -> Dict[str, Any]:
    """Unified entry for Gemini calls.

    kind: one of {"prompt_generate", "image_generate"}
    kwargs: payload for the corresponding action

    Without an API key, falls back to deterministic local placeholders so the
    app remains usable offline. With a key, service errors surface directly.
    """
    settings = settings or load_settings()
    if not settings.api_key:
        logger.debug("No GEMINI_API_KEY set; using local placeholder for %s", kind)
        return _local_placeholder(kind, settings=settings, **kwargs)
    return _real_gemini(kind, settings=settings, **kwargs)


async def generate_prompts_from_article(
    article_text: str,
    existing_prompts: Optional[Sequence[str]] = None,
    *,
    settings: Optional[Settings] = None,
) -> List[str]:
    res = await asyncio.to_thread(
        call_gemini,
        "prompt_generate",
        settings=settings,
        article_text=article_text,
        existing_prompts=list(existing_prompts or []),
    )
    return list(res["prompts"])


async def generate_image_from_prompt(prompt: str, *, settings: Optional[Settings] = None) -> str:
    res = await asyncio.to_thread(call_gemini, "image_generate", settings=settings, prompt=prompt)
    return res["path"]


def _local_placeholder(kind: str, *, settings: Settings, **kwargs) -> Dict[str, Any]:
    if kind == "prompt_generate":
        article_text: str = kwargs.get("article_text", "")
        existing: List[str] = kwargs.get("existing_prompts", [])
        count = settings.prompt_count
        # one prompt per sentence, continuing past those already used
        sentences = [s.strip() for s in re.split(r"(?<=[.!?])\s+|\n+", article_text) if s.strip()]
        if not sentences:
            sentences = ["An empty page"]
        start = len(existing)
        styles = ["watercolor", "flat vector", "photographic", "isometric", "ink sketch"]
        prompts = []
        for i in range(start, start + count):
            sentence = sentences[i % len(sentences)][:120]
            prompts.append(f"{styles[i % len(styles)]} illustration of: {sentence} (scene {i + 1})")
        return {"prompts": prompts}

    if kind == "image_generate":
        prompt: str = kwargs.get("prompt", "")
        pth = _new_image_path(settings.outdir, ".png")
        _write_placeholder_image(pth, prompt)
        return {"path": str(pth)}

    raise ValueError(f"Unsupported kind={kind}")


def _new_image_path(outdir: str, ext: str) -> Path:
    out = Path(outdir)
    out.mkdir(parents=True, exist_ok=True)
    return out / f"image_{uuid.uuid4().hex[:12]}{ext}"


def _write_placeholder_image(path: Path, caption: str) -> None:
    from PIL import Image, ImageDraw, ImageFont

    W, H = 1024, 576
    # stable pastel background per caption
    seed = sum(ord(c) for c in caption)
    bg = (180 + seed % 60, 180 + (seed // 7) % 60, 180 + (seed // 13) % 60)
    img = Image.new("RGB", (W, H), bg)
    draw = ImageDraw.Draw(img)
    draw.rounded_rectangle([40, 40, W - 40, H - 40], radius=24, outline=(60, 60, 60), width=3)

    try:
        font = ImageFont.truetype("DejaVuSans.ttf", 28)
    except OSError:
        font = ImageFont.load_default()
    lines = textwrap.wrap(caption, width=48)[:8] or ["(empty prompt)"]
    line_h = 40
    y = (H - line_h * len(lines)) / 2
    for ln in lines:
        tw = draw.textlength(ln, font=font)
        draw.text(((W - tw) / 2, y), ln, fill=(30, 30, 30), font=font)
        y += line_h

    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path)


# ------------------------- Real Google GenAI calls -------------------------

def _real_gemini(kind: str, *, settings: Settings, **kwargs) -> Dict[str, Any]:
    import google.generativeai as genai

    from .. import prompts as _p

    genai.configure(api_key=settings.api_key)
    request_options = {"timeout": settings.timeout}

    if kind == "prompt_generate":
        article_text: str = kwargs.get("article_text", "")
        existing: List[str] = kwargs.get("existing_prompts", [])
        count = settings.prompt_count
        model = genai.GenerativeModel(
            settings.text_model,
            generation_config={"response_mime_type": "application/json"},
        )
        prompt = _p.build_article_prompts_prompt(count, existing)
        logger.info("Requesting %d prompts from %s", count, settings.text_model)
        resp = model.generate_content([prompt, article_text], request_options=request_options)
        content = _first_text(resp)
        arr = _robust_json(content)
        if not isinstance(arr, list) or not all(isinstance(x, str) for x in arr):
            raise ServiceError("prompt_generate: model did not return a JSON array of strings")
        return {"prompts": arr}

    if kind == "image_generate":
        prompt: str = kwargs.get("prompt", "")
        if not settings.image_model:
            raise ValueError("GEMINI_IMAGE_MODEL is not set. Please set it to a valid image model (e.g., 'gemini-2.5-flash-image').")
        model = genai.GenerativeModel(model_name=settings.image_model)
        logger.info("Generating image with %s", settings.image_model)
        resp = model.generate_content(_p.build_image_prompt(prompt), request_options=request_options)
        img_bytes, mime = _first_image_bytes(resp)
        if not img_bytes:
            block = _block_reason(resp)
            if block:
                raise ServiceError(f"image generation blocked: {block}", ErrorKind.UNKNOWN)
            raise ServiceError("image model did not return image bytes")
        ext = ".png" if mime == "image/png" else ".jpg"
        pth = _new_image_path(settings.outdir, ext)
        with open(pth, "wb") as f:
            f.write(img_bytes)
        with open(str(pth) + ".meta.json", "w", encoding="utf-8") as mf:
            mf.write(json.dumps({"source": "gemini", "mime": mime, "bytes": len(img_bytes), "prompt": prompt}, ensure_ascii=False))
        return {"path": str(pth)}

    raise ValueError(f"Unsupported kind={kind}")


def _first_text(resp: Any) -> str:
    # Some SDK versions: candidates[0].content.parts[0].text
    cands = getattr(resp, "candidates", None) or []
    for c in cands:
        content = getattr(c, "content", None)
        for part in getattr(content, "parts", None) or []:
            if getattr(part, "text", None):
                return part.text
    return ""


def _first_image_bytes(resp: Any) -> tuple[bytes | None, str]:
    # resp.candidates[].content.parts[].inline_data
    for c in getattr(resp, "candidates", None) or []:
        content = getattr(c, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline and getattr(inline, "data", None):
                data = inline.data
                mime = getattr(inline, "mime_type", "") or "image/png"
                if isinstance(data, bytes):
                    return data, mime
                # some versions may base64-encode
                return base64.b64decode(data), mime
    return None, ""


def _block_reason(resp: Any) -> str:
    feedback = getattr(resp, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None)
    return str(reason) if reason else ""


def _robust_json(text: str) -> Any:
    # Try parse whole, then attempt to extract first [...] block
    try:
        return json.loads(text)
    except ValueError:
        pass
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end != -1 and end > start:
        try:
            return json.loads(text[start : end + 1])
        except ValueError:
            pass
    return None
