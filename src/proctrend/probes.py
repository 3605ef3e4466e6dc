"""
Metric probes for the monitored process.

Every probe returns a plain float, or FAILED when the value could not be
read. Probes never raise and never retry; the next tick simply tries again.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Protocol

import psutil

from proctrend.models import FAILED, MetricKind

logger = logging.getLogger(__name__)

NET_KINDS: tuple[str, ...] = (
    "all",
    "inet",
    "inet4",
    "inet6",
    "tcp",
    "tcp4",
    "tcp6",
    "udp",
    "udp4",
    "udp6",
    "unix",
)

CPU_MAX = 100.0
NET_MAX = 100.0

# Errors a probe turns into FAILED
PROBE_ERRORS = (psutil.Error, OSError, subprocess.SubprocessError, ValueError)


class Probe(Protocol):
    """Reads one metric for a process."""

    kind: MetricKind

    def sample(self, proc: psutil.Process) -> float: ...


class CpuProbe:
    """Percentage of one core used since the previous sample."""

    kind = MetricKind.CPU

    def prime(self, proc: psutil.Process) -> None:
        """Establish the baseline; psutil returns 0.0 on the first call."""
        try:
            proc.cpu_percent(interval=None)
        except PROBE_ERRORS as e:
            logger.debug("CPU baseline for PID %d unavailable: %s", proc.pid, e)

    def sample(self, proc: psutil.Process) -> float:
        try:
            return float(proc.cpu_percent(interval=None))
        except PROBE_ERRORS as e:
            logger.debug("CPU probe failed for PID %d: %s", proc.pid, e)
            return FAILED


class MemoryProbe:
    """Resident set size in bytes."""

    kind = MetricKind.MEMORY

    def sample(self, proc: psutil.Process) -> float:
        try:
            return float(proc.memory_info().rss)
        except PROBE_ERRORS as e:
            logger.debug("Memory probe failed for PID %d: %s", proc.pid, e)
            return FAILED


class ConnectionsProbe:
    """
    Number of active connections system-wide.

    Not scoped to the monitored process; it serves as a host activity
    indicator next to the per-process metrics.
    """

    kind = MetricKind.NETWORK

    def __init__(self, net_kind: str = "all") -> None:
        if net_kind not in NET_KINDS:
            raise ValueError(f"unknown connection kind {net_kind!r}")
        self.net_kind = net_kind

    def sample(self, proc: psutil.Process) -> float:
        try:
            return float(len(psutil.net_connections(kind=self.net_kind)))
        except PROBE_ERRORS as e:
            logger.debug("Connections probe failed: %s", e)
            return FAILED


# ── Open file descriptors ──────────────────────────────────────────────────


class FdCounter(Protocol):
    """One way of counting a process's open descriptors."""

    name: str

    def count(self, proc: psutil.Process) -> int: ...


class PsutilFdCounter:
    """psutil.Process.num_fds() (POSIX)."""

    name = "num_fds"

    def count(self, proc: psutil.Process) -> int:
        return proc.num_fds()


class PsutilOpenFilesCounter:
    """psutil.Process.open_files(), regular files only (Windows)."""

    name = "open_files"

    def count(self, proc: psutil.Process) -> int:
        return len(proc.open_files())


class ProcFdCounter:
    """Entries of /proc/<pid>/fd (Linux)."""

    name = "procfs"

    def __init__(self, proc_root: Path = Path("/proc")) -> None:
        self.proc_root = proc_root

    def count(self, proc: psutil.Process) -> int:
        fd_dir = self.proc_root / str(proc.pid) / "fd"
        with os.scandir(fd_dir) as entries:
            return sum(1 for _ in entries)


class LsofCounter:
    """Lines of `lsof -p <pid>` output minus the header (macOS, BSD)."""

    name = "lsof"

    def __init__(self, timeout: float = 2.0) -> None:
        self.timeout = timeout

    def count(self, proc: psutil.Process) -> int:
        result = subprocess.run(
            ["lsof", "-p", str(proc.pid)],
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=True,
        )
        lines = result.stdout.strip().splitlines()
        return max(0, len(lines) - 1)


class OpenFilesProbe:
    """
    Count of descriptors held by the process.

    Tries each counter in order and reports the first success. An empty
    chain means the platform is unsupported and the metric stays FAILED.
    """

    kind = MetricKind.FILES

    def __init__(self, counters: list[FdCounter]) -> None:
        self.counters = counters

    @property
    def supported(self) -> bool:
        """Whether any counter is available on this platform."""
        return bool(self.counters)

    def sample(self, proc: psutil.Process) -> float:
        for counter in self.counters:
            try:
                return float(counter.count(proc))
            except PROBE_ERRORS as e:
                logger.debug("Open files via %s failed for PID %d: %s", counter.name, proc.pid, e)
        return FAILED


def select_open_files_probe(platform: str | None = None, lsof_timeout: float = 2.0) -> OpenFilesProbe:
    """
    Pick the descriptor counting strategy for a platform, once at startup.

    Args:
        platform: sys.platform style name. Defaults to the running platform.
        lsof_timeout: Upper bound in seconds for the lsof subprocess.
    """
    platform = platform or sys.platform
    if platform.startswith("linux"):
        counters: list[FdCounter] = [PsutilFdCounter(), ProcFdCounter()]
    elif platform == "darwin" or "bsd" in platform or platform.startswith("sunos"):
        counters = [PsutilFdCounter(), LsofCounter(timeout=lsof_timeout)]
    elif platform == "win32":
        counters = [PsutilOpenFilesCounter()]
    else:
        counters = []
        logger.debug("Open files count is not supported on %s", platform)
    logger.debug("Open files counters for %s: %s", platform, [c.name for c in counters])
    return OpenFilesProbe(counters)


# ── Natural maxima ─────────────────────────────────────────────────────────


def total_memory() -> float | None:
    """Total physical memory in bytes, or None if it cannot be read."""
    try:
        return float(psutil.virtual_memory().total)
    except PROBE_ERRORS as e:
        logger.debug("Total memory lookup failed, graph will be unscaled: %s", e)
        return None


def _own_open_files_limit() -> int | None:
    """Soft RLIMIT_NOFILE of this process, None where it does not exist."""
    if sys.platform == "win32":
        logger.debug("Open files limit is not available on %s", sys.platform)
        return None
    import resource

    soft, _ = resource.getrlimit(resource.RLIMIT_NOFILE)
    return soft


def open_files_limit(proc: psutil.Process | None = None) -> float | None:
    """
    Soft RLIMIT_NOFILE, or None if unknown.

    Reads the target process's limit where psutil supports it (Linux).
    When that is unsupported or denied, falls back to the limit of this
    process.
    """
    soft = None
    if proc is not None and hasattr(proc, "rlimit"):
        try:
            soft, _ = proc.rlimit(psutil.RLIMIT_NOFILE)
        except PROBE_ERRORS as e:
            logger.debug("Target open files limit unavailable, using our own: %s", e)
    try:
        if soft is None:
            soft = _own_open_files_limit()
    except PROBE_ERRORS as e:
        logger.debug("Open files limit lookup failed, graph will be unscaled: %s", e)
        return None

    # RLIM_INFINITY is -1 and 0 means unset; neither is a usable ceiling
    if soft is None or soft <= 0:
        return None
    return float(soft)


def natural_maxima(proc: psutil.Process | None = None) -> dict[MetricKind, float | None]:
    """Natural maximum of each metric before zoom is applied."""
    return {
        MetricKind.CPU: CPU_MAX,
        MetricKind.MEMORY: total_memory(),
        MetricKind.NETWORK: NET_MAX,
        MetricKind.FILES: open_files_limit(proc),
    }


def build_probes(net_kind: str = "all", lsof_timeout: float = 2.0) -> dict[MetricKind, Probe]:
    """The four probes, keyed by metric."""
    return {
        MetricKind.CPU: CpuProbe(),
        MetricKind.MEMORY: MemoryProbe(),
        MetricKind.NETWORK: ConnectionsProbe(net_kind),
        MetricKind.FILES: select_open_files_probe(lsof_timeout=lsof_timeout),
    }
