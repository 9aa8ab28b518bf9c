from __future__ import annotations

from typing import Sequence


def build_article_prompts_prompt(count: int, existing_prompts: Sequence[str] = ()) -> str:
    # Illustrations for a blog post: one self-contained scene per prompt, no text in the image
    base = (
        "You are an art director illustrating a blog article. Read the article and write "
        f"{count} distinct prompts for an image generation model, one per key idea, in the order "
        "the ideas appear in the article.\n"
        "Each prompt must describe a single concrete scene: subject, setting, composition, lighting, "
        "and a consistent visual style across the set. Do not ask for text, captions, or logos in the image.\n"
        f"Return ONLY a JSON array of exactly {count} strings; each item is one full prompt."
    )
    if existing_prompts:
        used = "\n".join(f"- {p}" for p in existing_prompts)
        base += (
            "\nThe following prompts were already used. Cover different ideas or angles and do not repeat them:\n"
            f"{used}"
        )
    return base


def build_image_prompt(prompt: str) -> str:
    return (
        "Generate a single high-quality illustration for a blog article. "
        "Landscape composition, no text or watermarks. "
        f"Scene: {prompt}"
    )
