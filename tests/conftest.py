from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from weaver.config import Settings


class FakeImageService:
    """Async image service double: records prompts, fails on demand."""

    def __init__(self, failures: Optional[Dict[str, Exception]] = None) -> None:
        self.calls: List[str] = []
        self.failures = failures or {}
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self, prompt: str) -> str:
        self.calls.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if prompt in self.failures:
            raise self.failures[prompt]
        return f"/tmp/{prompt}.png"


class FakePromptService:
    def __init__(self, batches: Sequence[object]) -> None:
        self.batches = list(batches)
        self.calls: List[tuple] = []

    async def __call__(self, article_text: str, existing_prompts: Sequence[str]) -> List[str]:
        self.calls.append((article_text, list(existing_prompts)))
        await asyncio.sleep(0)
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return list(batch)


@pytest.fixture
def image_service() -> FakeImageService:
    return FakeImageService()


@pytest.fixture
def offline_settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    return Settings(
        api_key=None,
        text_model="gemini-2.5-flash",
        image_model="gemini-2.5-flash-image",
        prompt_count=3,
        outdir=str(tmp_path / "run"),
        timeout=5.0,
        log_level="INFO",
        log_file="",
    )
