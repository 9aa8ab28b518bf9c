import asyncio
import json
from pathlib import Path
from types import SimpleNamespace

import pytest
from PIL import Image

from weaver.errors import ServiceError
from weaver.llm import gemini
from weaver.session import Session
from weaver.state import ImageStatus


def test_offline_prompts_follow_article(offline_settings):
    article = "Cats sleep a lot. Dogs love walks! Birds sing at dawn."
    prompts = asyncio.run(gemini.generate_prompts_from_article(article, settings=offline_settings))
    assert len(prompts) == offline_settings.prompt_count
    assert "Cats sleep a lot." in prompts[0]
    assert "Birds sing at dawn." in prompts[2]


def test_offline_more_prompts_differ_from_existing(offline_settings):
    article = "One. Two. Three. Four."
    first = asyncio.run(gemini.generate_prompts_from_article(article, settings=offline_settings))
    more = asyncio.run(gemini.generate_prompts_from_article(article, first, settings=offline_settings))
    assert set(first).isdisjoint(more)


def test_offline_image_is_written(offline_settings):
    path = asyncio.run(gemini.generate_image_from_prompt("A lighthouse in a storm", settings=offline_settings))
    p = Path(path)
    assert p.exists()
    assert p.parent == Path(offline_settings.outdir)
    with Image.open(p) as img:
        assert img.size == (1024, 576)


def test_unsupported_kind(offline_settings):
    with pytest.raises(ValueError):
        gemini.call_gemini("judge", settings=offline_settings)


def test_session_end_to_end_offline(offline_settings):
    session = Session.with_gemini(offline_settings)
    asyncio.run(session.submit_article("First idea. Second idea."))
    asyncio.run(session.generate_all())
    snap = session.snapshot()
    assert len(snap.items) == 3
    assert all(im.status is ImageStatus.SUCCESS for im in snap.items)
    assert all(Path(im.result).exists() for im in snap.items)


def _resp(parts, block_reason=None):
    content = SimpleNamespace(parts=parts)
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=content)],
        prompt_feedback=SimpleNamespace(block_reason=block_reason),
    )


def test_response_helpers():
    text_resp = _resp([SimpleNamespace(text='["a", "b"]', inline_data=None)])
    assert gemini._first_text(text_resp) == '["a", "b"]'
    assert gemini._robust_json('Here you go: ["a", "b"] enjoy') == ["a", "b"]
    assert gemini._robust_json("no json") is None

    inline = SimpleNamespace(data=b"PNGDATA", mime_type="image/png")
    img_resp = _resp([SimpleNamespace(text=None, inline_data=inline)])
    assert gemini._first_image_bytes(img_resp) == (b"PNGDATA", "image/png")
    assert gemini._first_image_bytes(text_resp) == (None, "")


class _FakeModel:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def generate_content(self, contents, request_options=None):
        self.calls.append(contents)
        return self.response


def _patch_genai(monkeypatch, response):
    import google.generativeai as genai

    model = _FakeModel(response)
    monkeypatch.setattr(genai, "configure", lambda **kw: None)
    monkeypatch.setattr(genai, "GenerativeModel", lambda *a, **kw: model)
    return model


def test_real_prompt_generate_returns_prompts_verbatim(offline_settings, monkeypatch):
    offline_settings.api_key = "test-key"
    model = _patch_genai(monkeypatch, _resp([SimpleNamespace(text=json.dumps(["x", " y ", "", "x"]), inline_data=None)]))
    prompts = asyncio.run(gemini.generate_prompts_from_article("article", ["old"], settings=offline_settings))
    assert prompts == ["x", " y ", "", "x"]
    assert "old" in model.calls[0][0]


def test_real_prompt_generate_rejects_malformed(offline_settings, monkeypatch):
    offline_settings.api_key = "test-key"
    _patch_genai(monkeypatch, _resp([SimpleNamespace(text="sorry, no", inline_data=None)]))
    with pytest.raises(ServiceError):
        gemini.call_gemini("prompt_generate", settings=offline_settings, article_text="a", existing_prompts=[])


def test_real_image_generate_writes_bytes(offline_settings, monkeypatch):
    offline_settings.api_key = "test-key"
    inline = SimpleNamespace(data=b"JPEGDATA", mime_type="image/jpeg")
    _patch_genai(monkeypatch, _resp([SimpleNamespace(text=None, inline_data=inline)]))
    path = asyncio.run(gemini.generate_image_from_prompt("a fox", settings=offline_settings))
    assert path.endswith(".jpg")
    assert Path(path).read_bytes() == b"JPEGDATA"
    meta = json.loads(Path(path + ".meta.json").read_text())
    assert meta["prompt"] == "a fox"


def test_real_image_generate_without_image_fails(offline_settings, monkeypatch):
    offline_settings.api_key = "test-key"
    _patch_genai(monkeypatch, _resp([SimpleNamespace(text="I cannot draw that", inline_data=None)], block_reason="SAFETY"))
    with pytest.raises(ServiceError, match="blocked"):
        gemini.call_gemini("image_generate", settings=offline_settings, prompt="p")


def test_with_gemini_resolves_settings_once(tmp_path, monkeypatch):
    runs = iter(tmp_path / f"run_{i}" for i in range(100))
    monkeypatch.setattr("weaver.config.default_outdir", lambda: str(next(runs)))
    monkeypatch.setattr("weaver.config.get_api_key", lambda: None)
    monkeypatch.delenv("WEAVER_OUTDIR", raising=False)
    monkeypatch.setenv("WEAVER_PROMPT_COUNT", "2")

    session = Session.with_gemini()
    asyncio.run(session.submit_article("One idea. Another idea."))
    asyncio.run(session.generate_all())
    parents = {Path(im.result).parent for im in session.snapshot().items}
    assert parents == {tmp_path / "run_0"}
