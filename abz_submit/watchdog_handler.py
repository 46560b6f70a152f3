from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .scanner import LibraryScanner

logger = logging.getLogger(__name__)


def _event_path(raw: str | bytes) -> Path:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return Path(raw)


class WatchHandler(FileSystemEventHandler):
    """Queues audio files that appear or change under a watched library root."""

    def __init__(
        self,
        queue: asyncio.Queue[Path],
        scanner: LibraryScanner,
        *,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        super().__init__()
        self.queue = queue
        self.scanner = scanner
        self.loop = loop

    def on_created(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Taggers commonly write a temp file and rename it over the track.
        if event.is_directory:
            return
        dest = getattr(event, "dest_path", None)
        if dest:
            self._enqueue(_event_path(dest))

    def _maybe_enqueue(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._enqueue(_event_path(event.src_path))

    def _enqueue(self, path: Path) -> None:
        if not self.scanner.should_include(path):
            return
        logger.debug("Queued file change: %s", path)
        self.loop.call_soon_threadsafe(self.queue.put_nowait, path)
