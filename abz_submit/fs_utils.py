from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def create_temp_path(prefix: str, suffix: str, directory: Optional[Path] = None) -> Path:
    """Create an empty, uniquely named file and return its absolute path."""
    fd, name = tempfile.mkstemp(
        prefix=prefix,
        suffix=suffix,
        dir=str(directory) if directory is not None else None,
    )
    os.close(fd)
    return Path(name).absolute()


def remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.error("Failed to delete %s: %s", path, exc)


class WorkingArtifacts:
    """
    Temporary paths created during one pipeline run.

    Every registered path is deleted exactly once by `cleanup()`; deletion
    failures are logged and never raised.
    """

    def __init__(self) -> None:
        self._paths: List[Path] = []
        self._cleaned = False

    def add(self, path: Path) -> Path:
        if path not in self._paths:
            self._paths.append(path)
        return path

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def cleanup(self) -> None:
        if self._cleaned:
            return
        self._cleaned = True
        for path in self._paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.error("Failed to delete temporary file %s: %s", path, exc)
