from __future__ import annotations

import logging
from importlib import metadata
from typing import Any, Iterable, Optional

from ..config import Settings
from ..extractor import ExtractorRunner, register_cleanup
from ..fs_utils import WorkingArtifacts
from ..lifecycle import ShutdownHooks
from ..messages import MessageLog
from ..models import Message, RunOutcome, RunStatus, Track
from ..providers.acousticbrainz import AcousticBrainzClient
from ..results import reconcile_mbid
from .contexts import TrackSkipContext
from .plugins.track_skip import DurationTrackSkipPolicyPlugin
from .protocols import IdentifierLookup, MessageSink, ProgressListener, TrackSkipPolicyPlugin
from .resolver import IdentifierResolver
from .scratch import ScratchCopyManager

logger = logging.getLogger(__name__)

MESSAGE_CATEGORY = "Analysis"


def _select_entry_points(group: str) -> Iterable[Any]:
    try:
        eps = metadata.entry_points()
        if hasattr(eps, "select"):
            return eps.select(group=group)  # type: ignore[attr-defined]
        return eps.get(group, [])  # type: ignore[return-value]
    except Exception:  # pragma: no cover - depends on runtime packaging
        return []


def _load_plugins(group: str) -> list[Any]:
    plugins: list[Any] = []
    for ep in _select_entry_points(group):
        try:
            loaded = ep.load()
            plugin = loaded() if callable(loaded) else loaded
            if plugin is not None:
                plugins.append(plugin)
        except Exception as exc:  # pragma: no cover - plugin errors
            logger.warning("Failed to load plugin %s from %s: %s", getattr(ep, "name", ep), group, exc)
    return plugins


class _NoProgress:
    def progress(self, fraction: float) -> None:
        return None


class SubmissionPipeline:
    """
    Extracts AcousticBrainz features for one track and submits them.

    A run goes through identifier resolution, input preparation, extraction,
    output reconciliation and submission. Every failure ends the run with
    exactly one user-visible message, and temporary files are removed on
    every exit path.

    Extra track-skip policies may be registered via the
    `abz_submit.track_skip_policies` entry-point group.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        lookup: Optional[IdentifierLookup] = None,
        scratch: Optional[ScratchCopyManager] = None,
        runner: Optional[ExtractorRunner] = None,
        client: Optional[AcousticBrainzClient] = None,
        messages: Optional[MessageSink] = None,
        hooks: Optional[ShutdownHooks] = None,
        disabled_plugins: Optional[set[str]] = None,
    ) -> None:
        self.settings = settings
        self.resolver = IdentifierResolver(lookup)
        self.scratch = scratch or ScratchCopyManager(scratch_dir=settings.extractor.scratch_dir)
        self.runner = runner or ExtractorRunner(settings.extractor)
        self.client = client or AcousticBrainzClient(settings.submit)
        self.messages: MessageSink = messages if messages is not None else MessageLog()
        self._disabled_plugins = {name.strip() for name in (disabled_plugins or set()) if name and name.strip()}
        self._track_skip_policies: list[TrackSkipPolicyPlugin] = [
            p for p in _load_plugins("abz_submit.track_skip_policies") if getattr(p, "name", "") not in self._disabled_plugins
        ]
        self._track_skip_policies.insert(0, DurationTrackSkipPolicyPlugin())
        if hooks is not None:
            register_cleanup(hooks)

    def prepare(self) -> bool:
        """Install the extractor up front so the first run does not pay for it."""
        try:
            self.runner.installation()
        except Exception as exc:
            logger.error("AcousticBrainz extractor unavailable: %s", exc)
            return False
        return True

    def should_skip_track(self, ctx: TrackSkipContext) -> bool:
        for plugin in self._track_skip_policies:
            try:
                decision = plugin.should_skip(ctx)
            except Exception:  # pragma: no cover
                logger.exception(
                    "Track-skip plugin %s failed",
                    getattr(plugin, "name", plugin.__class__.__name__),
                )
                continue
            if decision is not None and decision.should_skip:
                return True
        return False

    def process(self, track: Track, progress: Optional[ProgressListener] = None) -> RunOutcome:
        if self.should_skip_track(TrackSkipContext(pipeline=self, track=track)):
            return RunOutcome(status=RunStatus.SKIPPED)
        if track.path is None or not track.path.exists():
            return self._fail(
                track,
                RunStatus.NOT_FOUND,
                f"Failed to submit '{track.name}' to AcousticBrainz. File not found.",
            )
        listener = progress or _NoProgress()
        artifacts = WorkingArtifacts()
        try:
            mbid = self.resolver.resolve(track)
            if mbid is None:
                return self._fail(
                    track,
                    RunStatus.NO_IDENTIFIER,
                    f"Failed to submit '{track.name}' to AcousticBrainz. Unable to find MusicBrainz ID.",
                )
            return self._submit(track, mbid, artifacts, listener)
        except Exception as exc:
            logger.exception("Failed to submit %s to AcousticBrainz", track.path)
            return self._fail(
                track,
                RunStatus.ERROR,
                f"Failed to submit '{track.name}' to AcousticBrainz: {exc}",
            )
        finally:
            listener.progress(1.0)
            artifacts.cleanup()

    def _submit(
        self,
        track: Track,
        mbid: str,
        artifacts: WorkingArtifacts,
        listener: ProgressListener,
    ) -> RunOutcome:
        listener.progress(0.25)
        prepared = self.scratch.prepare_input(track, mbid, artifacts)
        listener.progress(0.4)
        result = self.runner.run(prepared.path, artifacts)
        listener.progress(0.5)
        if not result.ok:
            logger.error(
                "Failed to analyze/submit %s. Input file: %s. Exit code: %s. Output:\n%s",
                track.path,
                prepared.path,
                result.exit_code,
                result.output,
            )
            return self._fail(
                track,
                RunStatus.EXTRACTOR_FAILED,
                f"Failed to submit '{track.name}' to AcousticBrainz. "
                f"Exit code {result.exit_code}. See log for details.",
                mbid=mbid,
            )
        used_mbid = reconcile_mbid(mbid, result.output_path)
        outcome = self.client.submit(used_mbid, result.output_path)
        if not outcome.ok:
            return self._fail(
                track,
                RunStatus.REJECTED,
                f"Failed to submit '{track.name}' to AcousticBrainz. {outcome.describe()}",
                mbid=used_mbid,
            )
        logger.info("Submitted %s to AcousticBrainz as %s", track.name, used_mbid)
        return RunOutcome(status=RunStatus.SUBMITTED, mbid=used_mbid)

    def _fail(
        self,
        track: Track,
        status: RunStatus,
        text: str,
        mbid: Optional[str] = None,
    ) -> RunOutcome:
        self.messages.add_message(Message(category=MESSAGE_CATEGORY, text=text, track_path=track.path))
        return RunOutcome(status=status, mbid=mbid, message=text)
