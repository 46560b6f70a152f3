from __future__ import annotations

import logging
from typing import Optional

from ..contexts import TrackSkipContext
from ..protocols import TrackSkipPolicyPlugin
from ..types import TrackSkipDecision

logger = logging.getLogger(__name__)

THIRTY_MINUTES_MS = 1000 * 60 * 30


class DurationTrackSkipPolicyPlugin(TrackSkipPolicyPlugin):
    """
    Never analyze tracks of 30 minutes or more.

    The extractor tends to crash on very long tracks, and its averaged
    features are not meaningful for them anyway.
    """

    name = "duration_track_skip_policy"

    def should_skip(self, ctx: TrackSkipContext) -> Optional[TrackSkipDecision]:
        duration = ctx.track.duration_ms
        if duration is not None and duration >= THIRTY_MINUTES_MS:
            logger.debug("Skipping track, because it is too long: %s", ctx.track.path)
            return TrackSkipDecision(should_skip=True, reason="too_long")
        return None
