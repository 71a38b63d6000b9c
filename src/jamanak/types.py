from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

NS_PER_MS = 1_000_000


class State(Enum):
    IDLE = "idle"
    RUNNING = "running"


class Unit(Enum):
    """Display unit for durations. Only milliseconds are rendered so far."""

    MILLI = "ms"
    NANO = "ns"
    SEC = "s"


@dataclass(frozen=True)
class Jam:
    label: str
    start_ns: int
    end_ns: Optional[int] = None
    duration_ms: float = 0.0


RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class ReportStyle:
    accent: RGB = (227, 225, 127)
    highlight: RGB = (143, 227, 125)
    fence: str = "–"
    color: bool = True
