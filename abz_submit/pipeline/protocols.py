from __future__ import annotations

from typing import List, Optional, Protocol

from ..models import Message, Track
from .contexts import TrackSkipContext
from .types import TrackSkipDecision


class IdentifierLookup(Protocol):
    name: str

    def lookup(self, track: Track) -> List[Track]: ...


class TrackSkipPolicyPlugin(Protocol):
    name: str

    def should_skip(self, ctx: TrackSkipContext) -> Optional[TrackSkipDecision]: ...


class ProgressListener(Protocol):
    def progress(self, fraction: float) -> None: ...


class MessageSink(Protocol):
    def add_message(self, message: Message) -> None: ...
