from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .meta_keys import MUSICBRAINZ_TRACK


@dataclass(frozen=True, slots=True)
class TrackId:
    generator: str
    value: str

    def normalized(self) -> str:
        return self.value.strip().lower()


@dataclass(slots=True)
class Track:
    path: Optional[Path]
    duration_ms: Optional[int] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    track_ids: List[TrackId] = field(default_factory=list)

    @property
    def name(self) -> str:
        if self.title:
            return self.title
        if self.path is not None:
            return self.path.name
        return "<unknown>"

    def ids_for(self, generator: str) -> List[str]:
        """Lowercased, de-duplicated identifiers of one generator, in tag order."""
        seen: List[str] = []
        for track_id in self.track_ids:
            if track_id.generator != generator:
                continue
            value = track_id.normalized()
            if value and value not in seen:
                seen.append(value)
        return seen

    def mbids(self) -> List[str]:
        return self.ids_for(MUSICBRAINZ_TRACK)

    def add_id(self, generator: str, value: str) -> None:
        self.track_ids.append(TrackId(generator=generator, value=value))


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    output_path: Path
    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    ok: bool
    status: int
    reason: str = ""
    message: Optional[str] = None

    def describe(self) -> str:
        text = f"{self.status}: {self.reason}."
        if self.message:
            text = f"{text} {self.message}"
        return text


class RunStatus(str, Enum):
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"
    NO_IDENTIFIER = "no_identifier"
    EXTRACTOR_FAILED = "extractor_failed"
    REJECTED = "rejected"
    ERROR = "error"
    SUBMITTED = "submitted"


@dataclass(slots=True)
class RunOutcome:
    status: RunStatus
    mbid: Optional[str] = None
    message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.message is not None


@dataclass(frozen=True, slots=True)
class Message:
    category: str
    text: str
    track_path: Optional[Path] = None


class ProcessingError(Exception):
    """Raised when a track cannot be processed but the runner should keep going."""


class ExtractorUnavailableError(ProcessingError):
    """Raised when no feature extractor binary could be installed."""


class MalformedOutputError(ProcessingError):
    """Raised when the extractor output is not the expected JSON document."""


class TagWriteError(ProcessingError):
    """Raised when an identifier cannot be embedded into an audio file."""
