"""proctrend - Main Textual application."""

import logging
from collections.abc import Mapping
from dataclasses import replace
from queue import Empty, Queue

import psutil
from rich.markup import escape
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult, RenderResult
from textual.binding import Binding
from textual.containers import Grid
from textual.widget import Widget
from textual.widgets import Static

from proctrend.config import MonitorConfig
from proctrend.models import DashboardSnapshot, MetricKind, ProcessHandle
from proctrend.monitor import ProcessMonitor
from proctrend.probes import Probe
from proctrend.render import (
    GRID_ORDER,
    MIN_HEIGHT,
    MIN_WIDTH,
    PanelView,
    build_panels,
    is_too_small,
    sparkline_rows,
    title_text,
)

logger = logging.getLogger(__name__)

DRAIN_PERIOD = 0.1  # seconds between checks of the update queue


class TitleBar(Static):
    """One-line bar with the process name and PID."""

    DEFAULT_CSS = """
    TitleBar {
        dock: top;
        height: 1;
        width: 100%;
        background: $primary;
        color: $text;
        text-style: bold;
        padding: 0 1;
    }
    """


class TrendGraph(Widget):
    """Bordered sparkline for one metric with a fixed display ceiling."""

    DEFAULT_CSS = """
    TrendGraph {
        border: round $secondary;
        border-title-color: $text;
        width: 1fr;
        height: 1fr;
    }
    """

    def __init__(self, kind: MetricKind, *args, **kwargs) -> None:
        """Initialize TrendGraph."""
        super().__init__(*args, **kwargs)
        self.kind = kind
        self._view: PanelView | None = None

    @property
    def view(self) -> PanelView | None:
        """What the graph currently shows."""
        return self._view

    def show(self, view: PanelView) -> None:
        """Display new panel contents."""
        self._view = view
        self.border_title = view.title
        self.styles.border = ("round", view.color)
        self.refresh()

    def render(self) -> RenderResult:
        """Draw the sparkline to fit the current content area."""
        if self._view is None:
            return ""
        width, height = self.content_size
        rows = sparkline_rows(self._view.values, width, height, self._view.ceiling)
        return Text("\n".join(rows), style=self._view.color, no_wrap=True)


class ProcTrendApp(App):
    """Live 2x2 trend dashboard for one process."""

    TITLE = "proctrend"
    SUB_TITLE = "Process Trend Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #graphs {
        grid-size: 2 2;
        grid-columns: 1fr 1fr;
        grid-rows: 1fr 1fr;
        height: 1fr;
    }

    #too-small {
        display: none;
        height: 1fr;
        content-align: center middle;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        handle: ProcessHandle,
        config: MonitorConfig | None = None,
        probes: Mapping[MetricKind, Probe] | None = None,
        process: psutil.Process | None = None,
    ) -> None:
        """
        Initialize the ProcTrendApp.

        Args:
            handle: The resolved process to watch.
            config: Sampling settings.
            probes: Metric probes passed on to the monitor.
            process: psutil handle passed on to the monitor.
        """
        super().__init__()
        self._handle = handle
        self._config = config or MonitorConfig()
        self._update_queue: Queue[DashboardSnapshot] = Queue()
        # The monitor only ever sees the queue, never the widgets
        self._monitor = ProcessMonitor(
            handle,
            self._update_queue,
            self._config,
            size_provider=self._terminal_size,
            probes=probes,
            process=process,
        )
        self._last_snapshot: DashboardSnapshot | None = None
        self._renders = 0
        self._exit_notified = False

    def _terminal_size(self) -> tuple[int, int]:
        size = self.size
        return size.width, size.height

    @property
    def monitor(self) -> ProcessMonitor:
        """The sampler feeding this dashboard."""
        return self._monitor

    @property
    def last_snapshot(self) -> DashboardSnapshot | None:
        """The snapshot most recently drawn."""
        return self._last_snapshot

    @property
    def render_count(self) -> int:
        """Number of redraws performed."""
        return self._renders

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield TitleBar(Text(self._handle.label), id="title-bar")
        with Grid(id="graphs"):
            for kind in GRID_ORDER:
                yield TrendGraph(kind, id=f"graph-{kind.value}")
        yield Static(
            f"Terminal too small (need {MIN_WIDTH}x{MIN_HEIGHT}+)", id="too-small"
        )

    def on_mount(self) -> None:
        """Start sampling and draw the initial empty dashboard."""
        self._monitor.start()
        # The monitor queued an empty snapshot before its thread started
        self._drain_updates()
        self.set_interval(DRAIN_PERIOD, self._drain_updates)

    def on_unmount(self) -> None:
        """Stop the sampler however the app shuts down."""
        self._monitor.stop()

    def _drain_updates(self) -> None:
        """Render the newest queued snapshot, discarding older ones."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self.render_snapshot(snapshot)

    def render_snapshot(self, snapshot: DashboardSnapshot) -> None:
        """
        Redraw the dashboard from a snapshot.

        Only ever called on the UI thread: from the queue drain, or to
        re-layout the last snapshot after a resize.
        """
        self._last_snapshot = snapshot
        self._renders += 1

        too_small = is_too_small(snapshot.width, snapshot.height)
        self.query_one("#graphs", Grid).display = not too_small
        self.query_one("#too-small", Static).display = too_small

        # Plain text: process names may contain markup brackets
        self.query_one("#title-bar", TitleBar).update(Text(title_text(snapshot)))
        for view in build_panels(snapshot):
            self.query_one(f"#graph-{view.kind.value}", TrendGraph).show(view)

        if snapshot.exited and not self._exit_notified:
            self._exit_notified = True
            self.notify(f"{escape(self._handle.label)} exited", severity="warning")

    def on_resize(self, event: events.Resize) -> None:
        """Redraw the last snapshot for the new terminal size."""
        if self._last_snapshot is not None:
            width, height = event.size
            self.render_snapshot(replace(self._last_snapshot, width=width, height=height))

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        logger.debug("Quit requested, cancelling sampler")
        self._monitor.stop()
        self.exit(return_code=0)
