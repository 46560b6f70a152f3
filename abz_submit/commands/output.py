from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

STATUS_COLORS = {
    "OK": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
}
C_RESET = "\033[0m"


@dataclass(frozen=True, slots=True)
class CheckLine:
    label: str
    status: str
    detail: Optional[str] = None

    def render(self) -> str:
        if self.detail:
            return f"{self.label}: {self.status} ({self.detail})"
        return f"{self.label}: {self.status}"


def ok(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "OK", detail).render()


def warning(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "WARNING", detail).render()


def error(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "ERROR", detail).render()


def skipped(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "SKIPPED", detail).render()


def enabled(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "ENABLED", detail).render()


def disabled(label: str, detail: Optional[str] = None) -> str:
    return CheckLine(label, "DISABLED", detail).render()


def colorize(lines: Iterable[str]) -> list[str]:
    """Color each rendered check line by the status word after the label."""
    result: list[str] = []
    for line in lines:
        _, _, rest = line.partition(": ")
        status = rest.split(" ", 1)[0]
        color = STATUS_COLORS.get(status)
        result.append(f"{color}{line}{C_RESET}" if color else line)
    return result
