from __future__ import annotations

import logging
from typing import Optional

from ..meta_keys import MUSICBRAINZ_TRACK
from ..models import Track
from .protocols import IdentifierLookup

logger = logging.getLogger(__name__)


class IdentifierResolver:
    """Finds the MusicBrainz track id to submit under, embedded first, looked up second."""

    def __init__(self, lookup: Optional[IdentifierLookup] = None) -> None:
        self.lookup = lookup

    def resolve(self, track: Track) -> Optional[str]:
        mbids = track.mbids()
        if len(mbids) > 1:
            logger.warning("Track %s. Found multiple MBIDs: %s", track.name, mbids)
        if mbids:
            logger.debug("Track %s. Found MBID %s", track.name, mbids[0])
            return mbids[0]
        return self._lookup(track)

    def _lookup(self, track: Track) -> Optional[str]:
        if self.lookup is None:
            return None
        try:
            candidates = self.lookup.lookup(track)
        except Exception:
            logger.exception("Failed to look up MBID for %s", track.name)
            return None
        for candidate in candidates or []:
            found = candidate.ids_for(MUSICBRAINZ_TRACK)
            if found:
                logger.debug("Track %s. Looked up MBID %s", track.name, found[0])
                return found[0]
        return None
