"""Layout and formatting for the dashboard panels.

Everything here is a pure function of a DashboardSnapshot (or of plain
values); the textual widgets only apply the results.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from proctrend.models import DashboardSnapshot, MetricKind, is_failed

SPARK = " ▁▂▃▄▅▆▇█"

TITLE_HEIGHT = 1
MIN_WIDTH = 20
MIN_HEIGHT = 6

# Panel order in the grid: row-major, top-left first
GRID_ORDER: tuple[MetricKind, ...] = (
    MetricKind.CPU,
    MetricKind.MEMORY,
    MetricKind.NETWORK,
    MetricKind.FILES,
)

COLOR_OK = "green"
COLOR_WARNING = "yellow"
COLOR_CRITICAL = "red"
COLOR_UNSCALED = "white"

MB = 1024.0 * 1024.0


@dataclass(slots=True, frozen=True)
class Region:
    """Rectangle in terminal cells."""

    x: int
    y: int
    width: int
    height: int


@dataclass(slots=True, frozen=True)
class Layout:
    """Title bar and the four grid cells."""

    title: Region
    cells: dict[MetricKind, Region]
    row_heights: tuple[int, int]
    column_widths: tuple[int, int]


@dataclass(slots=True, frozen=True)
class PanelView:
    """What one trend graph should show."""

    kind: MetricKind
    title: str
    values: tuple[float, ...]
    ceiling: float | None
    color: str
    region: Region


def compute_layout(width: int, height: int) -> Layout:
    """
    Split the terminal into a one-line title bar and a 2x2 grid.

    The top row and left column get the floor of the split, the remainder
    goes to the bottom row and right column.
    """
    width = max(0, width)
    height = max(0, height)
    grid_height = max(0, height - TITLE_HEIGHT)
    top = grid_height // 2
    bottom = grid_height - top
    left = width // 2
    right = width - left

    cells = {
        MetricKind.CPU: Region(0, TITLE_HEIGHT, left, top),
        MetricKind.MEMORY: Region(left, TITLE_HEIGHT, right, top),
        MetricKind.NETWORK: Region(0, TITLE_HEIGHT + top, left, bottom),
        MetricKind.FILES: Region(left, TITLE_HEIGHT + top, right, bottom),
    }
    return Layout(
        title=Region(0, 0, width, min(TITLE_HEIGHT, height)),
        cells=cells,
        row_heights=(top, bottom),
        column_widths=(left, right),
    )


def is_too_small(width: int, height: int) -> bool:
    """Whether the terminal cannot fit the grid."""
    return width < MIN_WIDTH or height < MIN_HEIGHT


def usage_color(latest: float | None, ceiling: float | None) -> str:
    """
    Threshold color from how much of the ceiling the latest sample uses.

    Red when 25% or less of the ceiling is left, yellow at 50% or less,
    green otherwise. Without a ceiling (or a sample) the graph is white.
    """
    if not ceiling or latest is None:
        return COLOR_UNSCALED
    unused = (ceiling - latest) / ceiling
    if unused <= 0.25:
        return COLOR_CRITICAL
    if unused <= 0.5:
        return COLOR_WARNING
    return COLOR_OK


def _fmt_max(value: float | None, fmt: str) -> str:
    return "?" if value is None else fmt.format(value)


def panel_title(
    kind: MetricKind,
    latest: float | None,
    natural_max: float | None,
    zoom: float,
) -> str:
    """Graph title with the latest value, the unscaled maximum and the zoom."""
    value = 0.0 if latest is None else latest
    if kind is MetricKind.CPU:
        return f"CPU {value:.2f}% ({zoom:.1f}x)"
    if kind is MetricKind.MEMORY:
        current = value if is_failed(value) else value / MB
        total = None if natural_max is None else natural_max / MB
        return f"MEM {current:.2f}MB / {_fmt_max(total, '{:.2f}')}MB ({zoom:.1f}x)"
    if kind is MetricKind.NETWORK:
        return f"Net {value:.0f} ({zoom:.1f}x)"
    return f"Files {value:.0f} / {_fmt_max(natural_max, '{:.0f}')} ({zoom:.1f}x)"


def sparkline_rows(
    values: Sequence[float],
    width: int,
    height: int,
    ceiling: float | None,
) -> list[str]:
    """
    Block-character trend of newest-first values, newest at the right edge.

    Returns ``height`` rows, top row first. Only the newest ``width``
    samples are drawn. Without a ceiling the largest visible sample is
    used. Failed samples are drawn at the empty level and values above
    the ceiling are clipped to the full column.
    """
    if width <= 0 or height <= 0:
        return []
    visible = list(values[:width])
    visible.reverse()
    blank = " " * (width - len(visible))
    if not visible:
        return [blank] * height

    top = ceiling if ceiling else max(visible)
    steps = len(SPARK) - 1
    fills: list[int] = []
    for v in visible:
        if top <= 0 or v <= 0:
            fills.append(0)
        else:
            fills.append(int(min(v / top, 1.0) * steps * height))

    rows: list[str] = []
    for row in range(height):
        floor = (height - 1 - row) * steps
        cells = (SPARK[max(0, min(fill - floor, steps))] for fill in fills)
        rows.append(blank + "".join(cells))
    return rows


def build_panels(snapshot: DashboardSnapshot) -> list[PanelView]:
    """Panel contents for every metric, in grid order."""
    layout = compute_layout(snapshot.width, snapshot.height)
    panels: list[PanelView] = []
    for kind in GRID_ORDER:
        latest = snapshot.latest(kind)
        ceiling = snapshot.ceiling(kind)
        region = layout.cells[kind]
        panels.append(
            PanelView(
                kind=kind,
                title=panel_title(
                    kind, latest, snapshot.natural_max.get(kind), snapshot.zoom.factor(kind)
                ),
                # Nothing wider than the cell can be drawn
                values=snapshot.series[kind][: region.width],
                ceiling=ceiling,
                color=usage_color(latest, ceiling),
                region=region,
            )
        )
    return panels


def title_text(snapshot: DashboardSnapshot) -> str:
    """Text of the one-line title bar."""
    text = snapshot.process_label
    if snapshot.exited:
        text = f"{text} - process exited"
    return text
