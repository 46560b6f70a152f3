from __future__ import annotations

import logging
import socket
import time
import urllib.error
from pathlib import Path
from typing import Iterator, List, Optional

import acoustid
import musicbrainzngs

from .. import __version__
from ..config import ProviderSettings
from ..meta_keys import ACOUSTID, MUSICBRAINZ_TRACK
from ..models import Track

logger = logging.getLogger(__name__)

DURATION_TOLERANCE_MS = 10_000


class MusicBrainzLookup:
    """
    Finds MusicBrainz recordings for a track that carries no MBID.

    AcoustID fingerprinting is tried first (when an API key is configured);
    a MusicBrainz text search on the track's artist/title is the fallback.
    Candidates are returned best first.
    """

    name = "musicbrainz"

    def __init__(self, settings: ProviderSettings) -> None:
        self.settings = settings
        self._network_disabled_until: float = 0.0
        self._last_network_warning: float = 0.0
        musicbrainzngs.set_useragent(
            "abz-submit",
            __version__,
            contact=settings.musicbrainz_useragent,
        )

    def lookup(self, track: Track) -> List[Track]:
        if self._network_disabled_until and time.time() < self._network_disabled_until:
            logger.debug("Network lookups paused; skipping %s", track.path)
            return []
        candidates = self._lookup_by_fingerprint(track)
        if candidates:
            return candidates
        return self._lookup_by_metadata(track)

    def _lookup_by_fingerprint(self, track: Track) -> List[Track]:
        if not self.settings.acoustid_api_key or track.path is None:
            return []
        try:
            duration, fingerprint = acoustid.fingerprint_file(str(track.path))
        except acoustid.FingerprintGenerationError as exc:
            logger.error("Fingerprint failed for %s: %s", track.path, exc)
            return []

        def _lookup():
            return acoustid.lookup(
                self.settings.acoustid_api_key,
                fingerprint,
                duration,
                meta="recordings",
            )

        response = self._run_with_retries(_lookup, label="AcoustID lookup", path=track.path)
        if not response:
            return []
        if response.get("status") != "ok":
            logger.warning(
                "AcoustID lookup failed for %s: %s",
                track.path,
                (response.get("error") or {}).get("message", "unknown error"),
            )
            return []
        return list(self._iter_acoustid(response))

    def _iter_acoustid(self, response: dict) -> Iterator[Track]:
        results = sorted(
            response.get("results", []),
            key=lambda match: float(match.get("score", 0)),
            reverse=True,
        )
        for match in results:
            for recording in match.get("recordings") or []:
                rec_id = recording.get("id")
                if not rec_id:
                    continue
                artists = recording.get("artists") or []
                artist_name = (
                    artists[0]["name"]
                    if artists and isinstance(artists[0], dict) and "name" in artists[0]
                    else None
                )
                candidate = Track(
                    path=None,
                    title=recording.get("title"),
                    artist=artist_name,
                )
                candidate.add_id(MUSICBRAINZ_TRACK, rec_id)
                if match.get("id"):
                    candidate.add_id(ACOUSTID, match["id"])
                yield candidate

    def _lookup_by_metadata(self, track: Track) -> List[Track]:
        if not track.artist or not track.title:
            return []

        def _search():
            return musicbrainzngs.search_recordings(
                artist=track.artist,
                recording=track.title,
                release=track.album,
                limit=5,
            )

        try:
            response = self._run_with_retries(
                _search, label="MusicBrainz recording search", path=track.path
            )
        except musicbrainzngs.ResponseError as exc:
            logger.warning("MusicBrainz search failed for %s: %s", track.path, exc)
            return []
        if not response:
            return []
        candidates: List[Track] = []
        for recording in response.get("recording-list", []):
            score = self._score(recording)
            if score < self.settings.min_search_score:
                continue
            length = self._parse_int(recording.get("length"))
            if track.duration_ms and length and abs(length - track.duration_ms) > DURATION_TOLERANCE_MS:
                logger.debug(
                    "Ignoring recording %s for %s: length %sms vs %sms",
                    recording.get("id"),
                    track.path,
                    length,
                    track.duration_ms,
                )
                continue
            candidate = Track(
                path=None,
                duration_ms=length,
                title=recording.get("title"),
                artist=recording.get("artist-credit-phrase"),
            )
            candidate.add_id(MUSICBRAINZ_TRACK, recording["id"])
            candidates.append(candidate)
        return candidates

    def _run_with_retries(self, fn, *, label: str, path: Optional[Path]):
        retries = int(self.settings.network_retries or 0)
        backoff = float(self.settings.network_retry_backoff_seconds or 0.0)
        attempts = max(1, 1 + retries)
        last_exc: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                return fn()
            except Exception as exc:
                if not self._is_transient_network_error(exc):
                    raise
                last_exc = exc
                if attempt >= attempts:
                    break
                sleep_for = max(0.0, backoff) * (2 ** (attempt - 1))
                if sleep_for:
                    time.sleep(sleep_for)
        if last_exc:
            self._note_network_failure(label=label, path=path, exc=last_exc)
        return None

    def _note_network_failure(self, *, label: str, path: Optional[Path], exc: Exception) -> None:
        now = time.time()
        # Warn at most once per ~10s while the network is down and pause lookups briefly.
        cooldown = 30.0
        self._network_disabled_until = max(self._network_disabled_until, now + cooldown)
        if now - self._last_network_warning >= 10.0:
            self._last_network_warning = now
            logger.warning("%s failed for %s: %s", label, path, exc)

    @staticmethod
    def _is_transient_network_error(exc: Exception) -> bool:
        if isinstance(exc, (socket.gaierror, urllib.error.URLError, TimeoutError, ConnectionError)):
            return True
        return isinstance(exc, (musicbrainzngs.NetworkError, acoustid.NetworkError))

    @staticmethod
    def _score(recording: dict) -> int:
        raw = recording.get("ext:score", recording.get("ext-score", 0))
        try:
            return int(raw)
        except (TypeError, ValueError):
            return 0

    @staticmethod
    def _parse_int(value: object) -> Optional[int]:
        if value is None:
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            return None
