"""Sampling engine for proctrend."""

import logging
import shutil
import threading
from collections.abc import Callable, Mapping
from queue import Queue

import psutil

from proctrend.config import MonitorConfig
from proctrend.history import HistoryStore
from proctrend.models import FAILED, DashboardSnapshot, MetricKind, MonitorState, ProcessHandle
from proctrend.probes import CpuProbe, Probe, build_probes, natural_maxima

logger = logging.getLogger(__name__)

SizeProvider = Callable[[], tuple[int, int]]


def terminal_size() -> tuple[int, int]:
    """Current terminal (columns, lines)."""
    size = shutil.get_terminal_size()
    return size.columns, size.lines


class ProcessMonitor:
    """
    Samples one process on a background thread.

    The thread is the only writer of the history store. After every tick it
    puts an immutable DashboardSnapshot on the update queue; whoever drains
    that queue is the only one who draws.

    Cancellation is cooperative: stop() sets an event that the loop checks
    at every sleep, so at most one tick runs after it is requested.
    """

    def __init__(
        self,
        handle: ProcessHandle,
        update_queue: Queue[DashboardSnapshot],
        config: MonitorConfig | None = None,
        size_provider: SizeProvider = terminal_size,
        probes: Mapping[MetricKind, Probe] | None = None,
        process: psutil.Process | None = None,
    ) -> None:
        """
        Initialize the ProcessMonitor.

        Args:
            handle: The resolved process.
            update_queue: Thread-safe queue to push snapshots to.
            config: Interval, capacities, zoom and probe settings.
            size_provider: Returns the current terminal (width, height).
            probes: Metric probes. Defaults to build_probes() for the config.
            process: psutil handle for the PID. Created from handle if omitted.
        """
        self._handle = handle
        self._queue = update_queue
        self._config = config or MonitorConfig()
        self._size_provider = size_provider
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = MonitorState.INITIALIZING
        self._ticks = 0
        self._dead_ticks = 0
        self._exited = False

        self._history = HistoryStore(self._config.capacities, self._config.zoom)
        self._probes = dict(
            probes
            or build_probes(self._config.net_kind, lsof_timeout=self._config.probe_timeout)
        )
        self._process = process or self._open_process(handle.pid)
        self._natural_max = natural_maxima(self._process)

        cpu_probe = self._probes.get(MetricKind.CPU)
        if isinstance(cpu_probe, CpuProbe) and self._process is not None:
            cpu_probe.prime(self._process)

    @staticmethod
    def _open_process(pid: int) -> psutil.Process | None:
        try:
            return psutil.Process(pid)
        except psutil.Error as e:
            logger.debug("Cannot open PID %d, every sample will fail: %s", pid, e)
            return None

    @property
    def handle(self) -> ProcessHandle:
        """The process being sampled."""
        return self._handle

    @property
    def state(self) -> MonitorState:
        """Lifecycle state of the sampler."""
        return self._state

    @property
    def ticks(self) -> int:
        """Number of completed sampling ticks."""
        return self._ticks

    @property
    def exited(self) -> bool:
        """Whether the monitored process was detected as gone."""
        return self._exited

    @property
    def is_running(self) -> bool:
        """Check if the sampler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """
        Publish the initial empty snapshot, then start the sampler thread.

        The initial snapshot is queued before the thread exists, so it is
        always the first one the renderer sees.
        """
        if self.is_running:
            return

        self._stop_event.clear()
        self._queue.put(self.snapshot())
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="ProcessMonitor",
        )
        self._state = MonitorState.RUNNING
        logger.info(
            "Monitoring %s every %d ms", self._handle.label, self._config.interval_ms
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampler thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        if self._state is MonitorState.STOPPED:
            return
        if self._state is MonitorState.RUNNING:
            self._state = MonitorState.CANCELLING
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Sampler thread did not stop within %s s", timeout)
                return
            self._thread = None
        self._state = MonitorState.STOPPED
        logger.info("Stopped monitoring %s after %d ticks", self._handle.label, self._ticks)

    def snapshot(self) -> DashboardSnapshot:
        """Immutable copy of the history plus the current terminal size."""
        width, height = self._size_provider()
        return self._history.snapshot(
            process_label=self._handle.label,
            width=width,
            height=height,
            natural_max=self._natural_max,
            exited=self._exited,
            ticks=self._ticks,
        )

    def _poll_loop(self) -> None:
        """Main sampling loop running in the background thread."""
        # Wait first: the empty initial snapshot already covers t=0
        while not self._stop_event.wait(timeout=self._config.interval):
            self.tick()
            if self._exited:
                logger.info("%s has exited, sampling stopped", self._handle.label)
                break

    def tick(self) -> None:
        """Sample all metrics once, record them and publish a snapshot."""
        samples = self.sample()
        self._history.push_all(samples)
        self._ticks += 1
        self._check_exited()
        self._queue.put(self.snapshot())

    def sample(self) -> dict[MetricKind, float]:
        """Read every metric once. Failures come back as FAILED."""
        values: dict[MetricKind, float] = {}
        for kind in MetricKind:
            probe = self._probes.get(kind)
            if probe is None or (self._process is None and kind is not MetricKind.NETWORK):
                values[kind] = FAILED
                continue
            values[kind] = probe.sample(self._process)
        return values

    def _check_exited(self) -> None:
        """Count consecutive ticks without a live process."""
        if self._config.exit_after <= 0:
            return
        alive = self._process is not None and self._is_alive(self._process)
        self._dead_ticks = 0 if alive else self._dead_ticks + 1
        if self._dead_ticks >= self._config.exit_after:
            self._exited = True

    @staticmethod
    def _is_alive(process: psutil.Process) -> bool:
        try:
            return process.is_running() and process.status() != psutil.STATUS_ZOMBIE
        except psutil.Error:
            return False
