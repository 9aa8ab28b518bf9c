from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from .errors import classify_error, is_critical
from .state import GENERATABLE_STATUSES, ImageStatus
from .store import ImageItemStore

logger = logging.getLogger(__name__)

PromptService = Callable[[str, Sequence[str]], Awaitable[List[str]]]
ImageService = Callable[[str], Awaitable[str]]

GENERATION_FAILED = "Generation Failed"


class GenerationOrchestrator:
    """Drives item status transitions against the external services.

    All store writes happen on the event loop; the only suspension points are
    the awaited service calls.
    """

    def __init__(
        self,
        store: ImageItemStore,
        prompt_service: PromptService,
        image_service: ImageService,
        on_critical: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self.store = store
        self.prompt_service = prompt_service
        self.image_service = image_service
        self.on_critical = on_critical

    async def generate_one(self, index: int) -> None:
        item = self.store.get(index)
        if item is None or item.status not in GENERATABLE_STATUSES:
            return

        # mark loading before the first await so the same index cannot be re-entered
        epoch = self.store.epoch
        prompt = item.prompt
        self.store.set_status(index, ImageStatus.LOADING)

        try:
            image_ref = await self.image_service(prompt)
        except Exception as e:
            logger.error('Failed to generate image for prompt: "%s" (%s)', prompt, classify_error(e).value, exc_info=e)
            if self.store.epoch != epoch:
                logger.info("Discarding failure for index %d: collection was replaced", index)
                return
            self.store.set_status(index, ImageStatus.ERROR, error_message=GENERATION_FAILED)
            if is_critical(e) and self.on_critical:
                self.on_critical(e)
            return

        if self.store.epoch != epoch:
            logger.info("Discarding result for index %d: collection was replaced", index)
            return
        self.store.set_status(index, ImageStatus.SUCCESS, result=image_ref)
        logger.debug("Generated image %d -> %s", index, image_ref)

    async def generate_all(self) -> None:
        total = len(self.store)
        logger.info("Generating all pending images (%d items)", total)
        for i in range(total):
            # re-read the live status just before dispatch
            if self.store.status_of(i) is ImageStatus.PENDING:
                await self.generate_one(i)

    async def generate_prompts(self, article_text: str, existing_prompts: Sequence[str] = ()) -> List[str]:
        prompts = await self.prompt_service(article_text, list(existing_prompts))
        logger.info("Received %d prompts", len(prompts))
        return list(prompts)
