from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from ..fs_utils import WorkingArtifacts, create_temp_path
from ..models import ProcessingError, Track
from ..tagging import TagReader, TagWriter
from .types import PreparedInput

logger = logging.getLogger(__name__)


class ScratchCopyManager:
    """
    Provides the file the extractor reads.

    Files that already embed an MBID are used in place. Otherwise the MBID is
    embedded into a temporary copy; the original is never modified.
    """

    def __init__(
        self,
        reader: Optional[TagReader] = None,
        writer: Optional[TagWriter] = None,
        scratch_dir: Optional[Path] = None,
    ) -> None:
        self.reader = reader or TagReader()
        self.writer = writer or TagWriter()
        self.scratch_dir = scratch_dir

    def prepare_input(self, track: Track, mbid: str, artifacts: WorkingArtifacts) -> PreparedInput:
        if track.path is None:
            raise ProcessingError(f"Track {track.name} has no file")
        original = track.path.absolute()
        # Ask the file itself, not the track model, which may hold looked-up ids.
        if self.reader.read_mbids(original):
            return PreparedInput(path=original, is_temporary=False)
        logger.info(
            "Track %s. MBID is not embedded. Embedding %s into copy. "
            "Consider embedding MBIDs before running this task.",
            track.name,
            mbid,
        )
        copy = artifacts.add(create_temp_path("copy", original.suffix, self.scratch_dir))
        shutil.copyfile(original, copy)
        self.writer.embed_mbid(copy, mbid)
        return PreparedInput(path=copy, is_temporary=True)
