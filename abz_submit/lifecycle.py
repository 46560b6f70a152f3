from __future__ import annotations

import atexit
import logging
from threading import Lock
from typing import Callable, List

logger = logging.getLogger(__name__)


class ShutdownHooks:
    """Teardown callbacks run once when the host shuts down."""

    def __init__(self, *, register_atexit: bool = True) -> None:
        self._hooks: List[Callable[[], None]] = []
        self._lock = Lock()
        self._ran = False
        if register_atexit:
            atexit.register(self.run)

    def add_shutdown_hook(self, hook: Callable[[], None]) -> None:
        with self._lock:
            self._hooks.append(hook)

    def __len__(self) -> int:
        return len(self._hooks)

    def run(self) -> None:
        with self._lock:
            if self._ran:
                return
            self._ran = True
            hooks = list(self._hooks)
        for hook in hooks:
            try:
                hook()
            except Exception:  # pragma: no cover - logged and ignored
                logger.exception("Shutdown hook %s failed", getattr(hook, "__name__", hook))
