"""Data models for proctrend."""

import math
from collections import deque
from dataclasses import dataclass
from enum import Enum

FAILED: float = -1.0  # Stored in a series when a probe could not read its value


def is_failed(value: float) -> bool:
    """Check whether a sample is the failure sentinel."""
    return value == FAILED


class MetricKind(Enum):
    """The four metrics sampled for the monitored process."""

    CPU = "cpu"
    MEMORY = "mem"
    NETWORK = "net"
    FILES = "files"


class MonitorState(Enum):
    """Lifecycle of the sampler activity."""

    INITIALIZING = "initializing"
    RUNNING = "running"
    CANCELLING = "cancelling"
    STOPPED = "stopped"


@dataclass(slots=True, frozen=True)
class ProcessHandle:
    """Immutable reference to the process being monitored."""

    pid: int
    name: str

    @property
    def label(self) -> str:
        """Title bar text, e.g. 'nginx (1234)'."""
        return f"{self.name} ({self.pid})"


class MetricSeries:
    """
    Bounded sample buffer, newest sample first.

    Pushing prepends and drops the oldest sample once the buffer holds
    more than ``capacity`` items.
    """

    __slots__ = ("_capacity", "_samples")

    def __init__(self, capacity: int = 512) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._samples: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of samples kept."""
        return self._capacity

    def push(self, value: float) -> None:
        """Prepend a sample, evicting the oldest one when full."""
        self._samples.appendleft(float(value))

    def latest(self) -> float | None:
        """Most recent sample, or None when empty."""
        return self._samples[0] if self._samples else None

    def values(self) -> tuple[float, ...]:
        """Immutable copy of the samples, newest first."""
        return tuple(self._samples)

    def __len__(self) -> int:
        return len(self._samples)


@dataclass(slots=True, frozen=True)
class ZoomConfig:
    """Per-metric zoom factors; they scale display ceilings only."""

    cpu: float = 1.0
    mem: float = 1.0
    net: float = 1.0
    files: float = 1.0

    def __post_init__(self) -> None:
        for kind in MetricKind:
            factor = getattr(self, kind.value)
            if not math.isfinite(factor) or factor <= 0:
                raise ValueError(
                    f"zoom factor for {kind.value} must be a finite number > 0, got {factor}"
                )

    def factor(self, kind: MetricKind) -> float:
        """Zoom factor for a metric."""
        return getattr(self, kind.value)

    def ceiling(self, kind: MetricKind, natural_max: float | None) -> float | None:
        """Display ceiling: natural maximum divided by the zoom factor."""
        if natural_max is None:
            return None
        return natural_max / self.factor(kind)

    @classmethod
    def from_mapping(cls, factors: dict[MetricKind, float]) -> "ZoomConfig":
        """Build from a {MetricKind: factor} mapping; missing kinds default to 1.0."""
        return cls(**{kind.value: value for kind, value in factors.items()})


@dataclass(slots=True, frozen=True)
class DashboardSnapshot:
    """Everything one redraw needs, copied out of the history store."""

    process_label: str
    series: dict[MetricKind, tuple[float, ...]]
    zoom: ZoomConfig
    natural_max: dict[MetricKind, float | None]
    width: int
    height: int
    exited: bool = False
    ticks: int = 0

    def latest(self, kind: MetricKind) -> float | None:
        """Most recent sample of a metric, or None when it has no samples."""
        values = self.series[kind]
        return values[0] if values else None

    def ceiling(self, kind: MetricKind) -> float | None:
        """Display ceiling of a metric after zoom."""
        return self.zoom.ceiling(kind, self.natural_max.get(kind))
