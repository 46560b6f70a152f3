from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Callable, Optional

import yaml

from .config import ExtractorSettings
from .fs_utils import WorkingArtifacts, create_temp_path, remove_tree
from .lifecycle import ShutdownHooks
from .models import ExtractionResult, ExtractorUnavailableError

logger = logging.getLogger(__name__)

STREAMING_EXTRACTOR_MUSIC = "streaming_extractor_music" + (".exe" if os.name == "nt" else "")
PROFILE_YAML = "profile.yaml"
EXECUTABLE_MODE = 0o755


@dataclass(frozen=True, slots=True)
class ExtractorInstallation:
    directory: Path
    executable: Path
    profile: Path


_lock = Lock()
_installation: Optional[ExtractorInstallation] = None
_hook_registered = False


def locate_binary(settings: ExtractorSettings) -> Optional[Path]:
    if settings.binary is not None:
        return settings.binary if settings.binary.is_file() else None
    found = shutil.which(STREAMING_EXTRACTOR_MUSIC)
    return Path(found).resolve() if found else None


def ensure_extracted(settings: ExtractorSettings) -> ExtractorInstallation:
    """
    Install the extractor binary and its profile into a private temp directory.

    The installation happens once per process and is shared by every pipeline
    and worker thread. A failed attempt is retried on the next call.
    """
    global _installation
    with _lock:
        if _installation is None:
            _installation = _install(settings)
        return _installation


def current_installation() -> Optional[ExtractorInstallation]:
    return _installation


def register_cleanup(hooks: ShutdownHooks) -> bool:
    """Register the installation teardown with the host; at most once per process."""
    global _hook_registered
    with _lock:
        if _hook_registered:
            return False
        hooks.add_shutdown_hook(remove_installation)
        _hook_registered = True
        return True


def remove_installation() -> None:
    global _installation
    with _lock:
        installation = _installation
        _installation = None
    if installation is None:
        return
    logger.debug("Deleting temporary AcousticBrainz binaries from %s", installation.directory)
    remove_tree(installation.directory)


def write_profile(path: Path, build_sha: str) -> None:
    profile = {
        "requireMbid": True,
        "indent": 0,
        "mergeValues": {
            "metadata": {
                "version": {
                    "essentia_build_sha": build_sha,
                },
            },
        },
    }
    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(profile, fh, sort_keys=False, default_flow_style=False)


def _install(settings: ExtractorSettings) -> ExtractorInstallation:
    logger.debug("Extracting AcousticBrainz binaries...")
    source = locate_binary(settings)
    if source is None:
        wanted = settings.binary or STREAMING_EXTRACTOR_MUSIC
        raise ExtractorUnavailableError(f"AcousticBrainz extractor not found: {wanted}")
    directory = Path(tempfile.mkdtemp(prefix="abzsubmit")).absolute()
    logger.debug("Executable directory: %s", directory)
    try:
        executable = directory / STREAMING_EXTRACTOR_MUSIC
        shutil.copyfile(source, executable)
        try:
            executable.chmod(EXECUTABLE_MODE)
        except (NotImplementedError, OSError) as exc:
            logger.warning("Was not able to make %s executable: %s", executable, exc)
        profile = directory / PROFILE_YAML
        write_profile(profile, settings.build_sha())
    except OSError:
        remove_tree(directory)
        raise
    return ExtractorInstallation(directory=directory, executable=executable, profile=profile)


class ExtractorRunner:
    """Runs the feature extractor as a child process, one input file at a time."""

    def __init__(
        self,
        settings: ExtractorSettings,
        installer: Callable[[ExtractorSettings], ExtractorInstallation] = ensure_extracted,
    ) -> None:
        self.settings = settings
        self._installer = installer

    def installation(self) -> ExtractorInstallation:
        try:
            return self._installer(self.settings)
        except ExtractorUnavailableError:
            raise
        except OSError as exc:
            raise ExtractorUnavailableError(f"Failed to install AcousticBrainz extractor: {exc}") from exc

    def run(self, input_path: Path, artifacts: WorkingArtifacts) -> ExtractionResult:
        installation = self.installation()
        output_path = artifacts.add(
            create_temp_path("acousticbrainz", ".json", installation.directory)
        )
        cmd = [
            str(installation.executable),
            str(input_path),
            str(output_path),
            str(installation.profile),
        ]
        logger.debug("Running %s", " ".join(cmd))
        proc = subprocess.run(
            cmd,
            cwd=str(installation.directory),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
        output = proc.stdout.decode("ascii", errors="replace") if proc.stdout else ""
        logger.debug("Output: %s", output)
        return ExtractionResult(output_path=output_path, exit_code=proc.returncode, output=output)
