from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from mutagen import File as MutagenFile
from mutagen.flac import FLAC
from mutagen.id3 import ID3, ID3NoHeaderError, UFID
from mutagen.mp4 import MP4, MP4FreeForm
from mutagen.oggvorbis import OggVorbis

from .meta_keys import (
    ID3_MUSICBRAINZ_OWNER,
    MP4_MUSICBRAINZ_TRACKID,
    MUSICBRAINZ_TRACK,
    VORBIS_MUSICBRAINZ_TRACKID,
)
from .models import TagWriteError, Track

logger = logging.getLogger(__name__)


class TagReader:
    """Reads track descriptions and embedded MusicBrainz ids straight from audio files."""

    SUPPORTED_EXTS = {".mp3", ".flac", ".m4a", ".ogg"}

    def read_track(self, path: Path) -> Track:
        path = path.expanduser().resolve()
        track = Track(path=path)
        try:
            audio = MutagenFile(path, easy=True)
        except Exception as exc:  # pragma: no cover - depends on local files
            logger.debug("Failed to read tags from %s: %s", path, exc)
            audio = None
        if audio is not None:
            length = getattr(getattr(audio, "info", None), "length", None)
            if length:
                track.duration_ms = int(length * 1000)
            if audio.tags:
                track.title = self._first_tag(audio, ["title"])
                track.artist = self._first_tag(audio, ["artist", "albumartist"])
                track.album = self._first_tag(audio, ["album"])
        for mbid in self.read_mbids(path):
            track.add_id(MUSICBRAINZ_TRACK, mbid)
        return track

    def read_mbids(self, path: Path) -> List[str]:
        readers: Dict[str, Callable[[Path], List[str]]] = {
            ".mp3": self._read_mp3,
            ".flac": self._read_flac,
            ".ogg": self._read_ogg,
            ".m4a": self._read_mp4,
        }
        reader = readers.get(path.suffix.lower())
        if not reader:
            logger.debug("Skipping unsupported extension %s", path)
            return []
        try:
            values = reader(path)
        except Exception as exc:  # pragma: no cover - depends on local files
            logger.debug("Failed to read MusicBrainz ids for %s: %s", path, exc)
            return []
        result: List[str] = []
        for value in values:
            cleaned = value.strip().lower()
            if cleaned and cleaned not in result:
                result.append(cleaned)
        return result

    def _read_mp3(self, path: Path) -> List[str]:
        try:
            tags = ID3(path)
        except ID3NoHeaderError:
            return []
        return [
            frame.data.decode("ascii", errors="replace")
            for frame in tags.getall("UFID")
            if frame.owner == ID3_MUSICBRAINZ_OWNER and frame.data
        ]

    def _read_flac(self, path: Path) -> List[str]:
        return list(FLAC(path).get(VORBIS_MUSICBRAINZ_TRACKID, []))

    def _read_ogg(self, path: Path) -> List[str]:
        return list(OggVorbis(path).get(VORBIS_MUSICBRAINZ_TRACKID, []))

    def _read_mp4(self, path: Path) -> List[str]:
        values = MP4(path).get(MP4_MUSICBRAINZ_TRACKID) or []
        return [
            value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)
            for value in values
        ]

    @staticmethod
    def _first_tag(audio, keys) -> Optional[str]:
        for key in keys:
            values = audio.tags.get(key)
            if values:
                if isinstance(values, list):
                    return values[0]
                return values
        return None


class TagWriter:
    """Embeds a MusicBrainz track id into the most common tagging formats."""

    def embed_mbid(self, path: Path, mbid: str) -> None:
        handlers: Dict[str, Callable[[Path, str], None]] = {
            ".mp3": self._embed_mp3,
            ".flac": self._embed_flac,
            ".ogg": self._embed_ogg,
            ".m4a": self._embed_mp4,
        }
        handler = handlers.get(path.suffix.lower())
        if not handler:
            raise TagWriteError(f"Cannot embed MusicBrainz id into {path.name}: unsupported format")
        try:
            handler(path, mbid.lower())
        except TagWriteError:
            raise
        except Exception as exc:
            raise TagWriteError(f"Cannot embed MusicBrainz id into {path.name}: {exc}") from exc

    def _embed_mp3(self, path: Path, mbid: str) -> None:
        try:
            tags = ID3(path)
        except ID3NoHeaderError:
            tags = ID3()
        tags.setall(
            f"UFID:{ID3_MUSICBRAINZ_OWNER}",
            [UFID(owner=ID3_MUSICBRAINZ_OWNER, data=mbid.encode("ascii"))],
        )
        tags.save(path)

    def _embed_flac(self, path: Path, mbid: str) -> None:
        audio = FLAC(path)
        self._append_vorbis(audio, mbid)
        audio.save()

    def _embed_ogg(self, path: Path, mbid: str) -> None:
        audio = OggVorbis(path)
        self._append_vorbis(audio, mbid)
        audio.save()

    def _embed_mp4(self, path: Path, mbid: str) -> None:
        audio = MP4(path)
        audio[MP4_MUSICBRAINZ_TRACKID] = [MP4FreeForm(mbid.encode("utf-8"))]
        audio.save()

    @staticmethod
    def _append_vorbis(audio, mbid: str) -> None:
        existing = list(audio.get(VORBIS_MUSICBRAINZ_TRACKID, []))
        if mbid not in [value.lower() for value in existing]:
            existing.append(mbid)
        audio[VORBIS_MUSICBRAINZ_TRACKID] = existing
