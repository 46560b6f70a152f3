from __future__ import annotations

import logging
from threading import Lock
from typing import List

from .models import Message

logger = logging.getLogger(__name__)


class MessageLog:
    """Collects the user-visible messages produced by pipeline runs."""

    def __init__(self) -> None:
        self._messages: List[Message] = []
        self._lock = Lock()

    def add_message(self, message: Message) -> None:
        logger.debug("%s: %s", message.category, message.text)
        with self._lock:
            self._messages.append(message)

    @property
    def messages(self) -> List[Message]:
        with self._lock:
            return list(self._messages)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
