from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..models import Track


@dataclass(frozen=True)
class TrackSkipContext:
    pipeline: Any
    track: Track
