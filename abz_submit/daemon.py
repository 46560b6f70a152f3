from __future__ import annotations

import asyncio
import logging
from collections import Counter
from pathlib import Path
from threading import Lock
from typing import Iterable, Optional

from watchdog.observers import Observer

from .config import Settings
from .models import RunOutcome, RunStatus
from .pipeline import SubmissionPipeline
from .scanner import LibraryScanner
from .tagging import TagReader
from .watchdog_handler import WatchHandler

logger = logging.getLogger(__name__)


class LoggingProgress:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.fraction = 0.0

    def progress(self, fraction: float) -> None:
        self.fraction = fraction
        logger.debug("%s: %d%%", self.path.name, int(fraction * 100))


class SubmitDaemon:
    """Feeds library tracks to the submission pipeline on a pool of worker threads."""

    def __init__(
        self,
        settings: Settings,
        pipeline: SubmissionPipeline,
        scanner: Optional[LibraryScanner] = None,
        reader: Optional[TagReader] = None,
    ) -> None:
        self.settings = settings
        self.pipeline = pipeline
        self.reader = reader or TagReader()
        self.scanner = scanner or LibraryScanner(settings.library)
        self.queue: asyncio.Queue[Path] = asyncio.Queue()
        self.observer: Observer | None = None
        self.outcomes: list[RunOutcome] = []
        self._outcome_lock = Lock()
        self._seen: dict[Path, tuple[int, int]] = {}
        self._seen_lock = Lock()

    async def run_paths(self, paths: Iterable[Path]) -> None:
        for path in paths:
            await self.queue.put(path)
        workers = self._start_workers()
        await self.queue.join()
        await self._stop_workers(workers)

    async def run_scan(self) -> None:
        logger.debug("Starting one-off scan")
        await self.run_paths(self.scanner.iter_paths())

    async def run_daemon(self) -> None:
        logger.debug("Starting daemon")
        for path in self.scanner.iter_paths():
            await self.queue.put(path)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._bootstrap_watchdog, loop)
        workers = self._start_workers()
        try:
            while True:
                await asyncio.sleep(3600)
        except (asyncio.CancelledError, KeyboardInterrupt):
            logger.debug("Daemon stopping")
        finally:
            if self.observer:
                self.observer.stop()
                self.observer.join()
            await self._stop_workers(workers)

    def _bootstrap_watchdog(self, loop: asyncio.AbstractEventLoop) -> None:
        handler = WatchHandler(self.queue, self.scanner, loop=loop)
        observer = Observer()
        for root in self.settings.library.roots:
            observer.schedule(handler, str(root), recursive=True)
        observer.start()
        self.observer = observer

    def _start_workers(self) -> list[asyncio.Task[None]]:
        concurrency = max(1, self.settings.daemon.worker_concurrency)
        return [asyncio.create_task(self._worker(i)) for i in range(concurrency)]

    async def _stop_workers(self, workers: list[asyncio.Task[None]]) -> None:
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

    async def _worker(self, worker_id: int) -> None:
        while True:
            path = await self.queue.get()
            try:
                await asyncio.get_running_loop().run_in_executor(None, self.process_path, path)
            except Exception:  # pragma: no cover - logged and ignored
                logger.exception("Worker %s failed to process %s", worker_id, path)
            finally:
                self.queue.task_done()

    def process_path(self, path: Path) -> Optional[RunOutcome]:
        if not self._mark_seen(path):
            logger.debug("Skipping %s; already processed and unchanged", path)
            return None
        track = self.reader.read_track(path)
        outcome = self.pipeline.process(track, LoggingProgress(path))
        with self._outcome_lock:
            self.outcomes.append(outcome)
        return outcome

    def _mark_seen(self, path: Path) -> bool:
        try:
            stat = path.stat()
        except OSError:
            # Missing files still go through the pipeline so they get reported.
            return True
        key = path.resolve()
        signature = (stat.st_mtime_ns, stat.st_size)
        with self._seen_lock:
            if self._seen.get(key) == signature:
                return False
            self._seen[key] = signature
        return True

    def summary(self) -> Counter[RunStatus]:
        with self._outcome_lock:
            return Counter(outcome.status for outcome in self.outcomes)

    def report(self) -> None:
        counts = self.summary()
        if not counts:
            return
        parts = ", ".join(f"{status.value}={count}" for status, count in sorted(counts.items(), key=lambda i: i[0].value))
        logger.info("Processed %d track(s): %s", sum(counts.values()), parts)
