from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class TrackSkipDecision:
    should_skip: bool
    reason: str | None = None


@dataclass(frozen=True)
class PreparedInput:
    path: Path
    is_temporary: bool
