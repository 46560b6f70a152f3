from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import Settings
from .daemon import SubmitDaemon
from .lifecycle import ShutdownHooks
from .messages import MessageLog
from .pipeline import ScratchCopyManager, SubmissionPipeline
from .providers.musicbrainz import MusicBrainzLookup
from .scanner import LibraryScanner
from .tagging import TagReader, TagWriter

logger = logging.getLogger(__name__)


@dataclass
class AbzSubmitApp:
    settings: Settings
    hooks: ShutdownHooks
    messages: MessageLog
    reader: TagReader
    scanner: LibraryScanner
    lookup: MusicBrainzLookup
    pipeline: SubmissionPipeline
    _daemon: SubmitDaemon | None = None

    @classmethod
    def create(cls, settings: Settings) -> "AbzSubmitApp":
        hooks = ShutdownHooks()
        messages = MessageLog()
        reader = TagReader()
        scanner = LibraryScanner(settings.library)
        lookup = MusicBrainzLookup(settings.providers)
        pipeline = SubmissionPipeline(
            settings,
            lookup=lookup,
            scratch=ScratchCopyManager(reader, TagWriter(), settings.extractor.scratch_dir),
            messages=messages,
            hooks=hooks,
            disabled_plugins=set(settings.daemon.pipeline_disable),
        )
        if not pipeline.prepare():
            logger.warning("Tracks will fail until the AcousticBrainz extractor is available")
        return cls(
            settings=settings,
            hooks=hooks,
            messages=messages,
            reader=reader,
            scanner=scanner,
            lookup=lookup,
            pipeline=pipeline,
        )

    def get_daemon(self) -> SubmitDaemon:
        if self._daemon is None:
            self._daemon = SubmitDaemon(
                self.settings,
                self.pipeline,
                scanner=self.scanner,
                reader=self.reader,
            )
        return self._daemon

    def close(self) -> None:
        self.hooks.run()
