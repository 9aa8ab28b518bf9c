from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class ImageStatus(str, Enum):
    PENDING = "pending"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({ImageStatus.SUCCESS, ImageStatus.CANCELLED})
GENERATABLE_STATUSES = frozenset({ImageStatus.PENDING, ImageStatus.ERROR})


@dataclass(frozen=True)
class ImageItem:
    """One prompt and its generation state.

    ``result`` is only set for ``success`` and ``error_message`` only for
    ``error``; any other combination is rejected at construction.
    """

    prompt: str
    status: ImageStatus = ImageStatus.PENDING
    result: Optional[str] = None
    error_message: Optional[str] = None

    def __post_init__(self) -> None:
        status = ImageStatus(self.status)
        object.__setattr__(self, "status", status)
        if status is ImageStatus.SUCCESS:
            if self.result is None or self.error_message is not None:
                raise ValueError("success item requires a result and no error_message")
        elif status is ImageStatus.ERROR:
            if self.error_message is None or self.result is not None:
                raise ValueError("error item requires an error_message and no result")
        elif self.result is not None or self.error_message is not None:
            raise ValueError(f"{status.value} item must not carry a result or error_message")

    @property
    def can_generate(self) -> bool:
        return self.status in GENERATABLE_STATUSES

    def to_dict(self) -> dict:
        return {
            "prompt": self.prompt,
            "status": self.status.value,
            "result": self.result,
            "error": self.error_message,
        }


ItemCollection = Tuple[ImageItem, ...]


@dataclass(frozen=True)
class SessionSnapshot:
    article_text: str = ""
    items: ItemCollection = field(default_factory=tuple)
    error: Optional[str] = None
    is_generating_prompts: bool = False
    is_generating_more: bool = False

    @property
    def has_pending(self) -> bool:
        return any(im.status is ImageStatus.PENDING for im in self.items)

    @property
    def is_generating(self) -> bool:
        return any(im.status is ImageStatus.LOADING for im in self.items)

    @property
    def is_busy(self) -> bool:
        return self.is_generating_prompts or self.is_generating_more or self.is_generating

    @property
    def prompts(self) -> list[str]:
        return [im.prompt for im in self.items]
