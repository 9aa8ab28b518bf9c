from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from .state import ImageItem, ImageStatus, ItemCollection

logger = logging.getLogger(__name__)

Listener = Callable[[ItemCollection], None]


class ImageItemStore:
    """Ordered, append-only collection of :class:`ImageItem`.

    Items are immutable; every update swaps a single slot for a new item, so a
    snapshot handed out earlier never changes under the reader. ``epoch`` is
    bumped whenever the whole collection is replaced.
    """

    def __init__(self) -> None:
        self._items: List[ImageItem] = []
        self._listeners: List[Listener] = []
        self.epoch = 0

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> ImageItem:
        return self._items[index]

    def snapshot(self) -> ItemCollection:
        return tuple(self._items)

    def get(self, index: int) -> Optional[ImageItem]:
        if 0 <= index < len(self._items):
            return self._items[index]
        return None

    def status_of(self, index: int) -> Optional[ImageStatus]:
        item = self.get(index)
        return item.status if item else None

    def initialize(self, prompts: Iterable[str]) -> ItemCollection:
        self._items = [ImageItem(prompt=p) for p in prompts]
        self.epoch += 1
        self._notify()
        return self.snapshot()

    def append(self, prompts: Iterable[str]) -> None:
        new_items = [ImageItem(prompt=p) for p in prompts]
        if not new_items:
            return
        self._items = self._items + new_items
        self._notify()

    def clear(self) -> None:
        self._items = []
        self.epoch += 1
        self._notify()

    def set_prompt(self, index: int, text: str) -> None:
        item = self.get(index)
        if item is None:
            return
        self._replace(index, ImageItem(prompt=text, status=item.status, result=item.result, error_message=item.error_message))

    def set_status(
        self,
        index: int,
        status: ImageStatus,
        result: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        item = self.get(index)
        if item is None:
            return
        status = ImageStatus(status)
        # drop fields that do not belong to the new status
        self._replace(
            index,
            ImageItem(
                prompt=item.prompt,
                status=status,
                result=result if status is ImageStatus.SUCCESS else None,
                error_message=error_message if status is ImageStatus.ERROR else None,
            ),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(self, index: int, item: ImageItem) -> None:
        items = list(self._items)
        items[index] = item
        self._items = items
        self._notify()

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)
