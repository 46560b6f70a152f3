from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable, Optional

import musicbrainzngs

from .. import __version__
from ..config import ProviderSettings, SubmitSettings

logger = logging.getLogger(__name__)

# Any well-known recording works; the preflight only checks that the key is accepted.
ACOUSTID_PROBE_MBID = "5b11f4ce-a62d-471e-81fc-a69a8278c7da"
PREFLIGHT_TIMEOUT = 5


def validate_providers(settings: ProviderSettings, submit: Optional[SubmitSettings] = None) -> None:
    """Call every configured remote service once; raise SystemExit listing all failures."""
    checks: list[tuple[str, Callable[[], None]]] = [
        ("AcoustID", lambda: _validate_acoustid(settings.acoustid_api_key)),
        ("MusicBrainz", lambda: _validate_musicbrainz(settings.musicbrainz_useragent)),
    ]
    if submit is not None:
        checks.append(("AcousticBrainz", lambda: _validate_acousticbrainz(submit.base_url)))
    errors: list[str] = []
    for label, check in checks:
        try:
            check()
        except Exception as exc:  # pragma: no cover - network failure depends on env
            errors.append(f"{label} validation failed: {exc}")
    if errors:
        message = "\n".join(errors)
        raise SystemExit(f"Provider validation failed:\n{message}")


def _validate_acoustid(api_key: Optional[str]) -> None:
    if not api_key:
        logger.debug("No AcoustID key configured; fingerprint lookups are disabled")
        return
    params = urllib.parse.urlencode({"client": api_key, "mbid": ACOUSTID_PROBE_MBID})
    url = f"https://api.acoustid.org/v2/track/list_by_mbid?{params}"
    try:
        with urllib.request.urlopen(url, timeout=PREFLIGHT_TIMEOUT) as response:
            payload = json.load(response)
    except urllib.error.URLError as exc:
        raise RuntimeError(f"unable to reach AcoustID API: {exc}") from exc
    error = payload.get("error") or {}
    if payload.get("status") == "error":
        if error.get("code") == 4:
            raise RuntimeError("invalid AcoustID API key")
        logger.debug("AcoustID preflight returned %s (%s)", error.get("code"), error.get("message"))


def _validate_musicbrainz(contact: str) -> None:
    if not contact or "example.com" in contact:
        raise RuntimeError("musicbrainz_useragent must include a real contact (e.g. email or URL)")
    musicbrainzngs.set_useragent("abz-submit", __version__, contact=contact)
    try:
        musicbrainzngs.search_recordings(recording="Blue in Green", limit=1)
    except musicbrainzngs.WebServiceError as exc:
        raise RuntimeError(f"MusicBrainz API call failed: {exc}") from exc


def _validate_acousticbrainz(base_url: str) -> None:
    req = urllib.request.Request(base_url, method="HEAD")
    try:
        with urllib.request.urlopen(req, timeout=PREFLIGHT_TIMEOUT) as resp:
            logger.debug("AcousticBrainz preflight returned %s", resp.status)
    except urllib.error.HTTPError as exc:
        # Only server errors count as down.
        if exc.code >= 500:
            raise RuntimeError(f"AcousticBrainz HTTP error {exc.code}") from exc
    except urllib.error.URLError as exc:
        raise RuntimeError(f"unable to reach AcousticBrainz: {exc}") from exc
