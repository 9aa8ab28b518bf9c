from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional

from .config import load_settings
from .errors import error_message
from .orchestrator import GenerationOrchestrator, ImageService, PromptService
from .state import ItemCollection, SessionSnapshot
from .store import ImageItemStore

logger = logging.getLogger(__name__)

EMPTY_ARTICLE_ERROR = "Please paste an article before generating prompts."
CRITICAL_ERROR = "A critical error occurred (quota limit or API key issue). Some images may have failed."
MORE_PROMPTS_ERROR = "Failed to generate more prompts: {}"

Listener = Callable[[SessionSnapshot], None]


class Session:
    """Command API over the article → prompts → images workflow.

    Every state change publishes a fresh :class:`SessionSnapshot` to the
    subscribers; rendering is entirely up to them.
    """

    def __init__(self, prompt_service: PromptService, image_service: ImageService) -> None:
        self.store = ImageItemStore()
        self.orchestrator = GenerationOrchestrator(
            self.store, prompt_service, image_service, on_critical=self._on_critical
        )
        self._state = SessionSnapshot()
        self._listeners: List[Listener] = []
        self.store.subscribe(self._on_items)

    @classmethod
    def with_gemini(cls, settings=None) -> "Session":
        from .llm import gemini

        # resolve once so every image lands in the same run directory
        settings = settings or load_settings()

        async def prompts(article_text, existing_prompts):
            return await gemini.generate_prompts_from_article(article_text, existing_prompts, settings=settings)

        async def image(prompt):
            return await gemini.generate_image_from_prompt(prompt, settings=settings)

        return cls(prompts, image)

    # ---- read side ----

    def snapshot(self) -> SessionSnapshot:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- commands ----

    def set_article_text(self, text: str) -> None:
        self._update(article_text=text)

    def edit_prompt(self, index: int, text: str) -> bool:
        item = self.store.get(index)
        if item is None or not item.can_generate:
            return False
        self.store.set_prompt(index, text)
        return True

    async def submit_article(self, text: Optional[str] = None) -> None:
        if text is not None:
            self._update(article_text=text)
        article = self._state.article_text
        if not article.strip():
            self._update(error=EMPTY_ARTICLE_ERROR)
            return

        self._update(is_generating_prompts=True, error=None)
        self.store.clear()
        try:
            prompts = await self.orchestrator.generate_prompts(article)
        except Exception as e:
            logger.exception("Prompt generation failed")
            self._update(error=error_message(e))
        else:
            self.store.initialize(prompts)
        finally:
            self._update(is_generating_prompts=False)

    async def generate(self, index: int) -> None:
        await self.orchestrator.generate_one(index)

    async def generate_all(self) -> None:
        await self.orchestrator.generate_all()

    async def generate_more(self) -> None:
        article = self._state.article_text
        if not article.strip():
            return

        self._update(is_generating_more=True, error=None)
        try:
            current = [im.prompt for im in self.store.snapshot()]
            prompts = await self.orchestrator.generate_prompts(article, current)
        except Exception as e:
            logger.exception("Generating more prompts failed")
            self._update(error=MORE_PROMPTS_ERROR.format(error_message(e)))
        else:
            self.store.append(prompts)
        finally:
            self._update(is_generating_more=False)

    def reset(self) -> None:
        self.store.clear()
        self._update(article_text="", error=None)

    # ---- internals ----

    def _on_critical(self, exc: BaseException) -> None:
        self._update(error=CRITICAL_ERROR)

    def _on_items(self, items: ItemCollection) -> None:
        self._update(items=items)

    def _update(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
