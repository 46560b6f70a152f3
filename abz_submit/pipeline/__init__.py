from __future__ import annotations

from .contexts import TrackSkipContext
from .core import SubmissionPipeline
from .resolver import IdentifierResolver
from .scratch import ScratchCopyManager
from .types import PreparedInput, TrackSkipDecision

__all__ = [
    "IdentifierResolver",
    "PreparedInput",
    "ScratchCopyManager",
    "SubmissionPipeline",
    "TrackSkipContext",
    "TrackSkipDecision",
]
