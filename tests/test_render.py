"""Tests for dashboard layout and formatting."""

import pytest

from proctrend.history import HistoryStore
from proctrend.models import FAILED, MetricKind, ZoomConfig
from proctrend.render import (
    COLOR_CRITICAL,
    COLOR_OK,
    COLOR_UNSCALED,
    COLOR_WARNING,
    SPARK,
    build_panels,
    compute_layout,
    is_too_small,
    panel_title,
    sparkline_rows,
    title_text,
    usage_color,
)

MB = 1024 * 1024


def sparkline(values, width, ceiling) -> str:
    """One-row rendering of values."""
    return sparkline_rows(values, width, 1, ceiling)[0]


class TestComputeLayout:
    """Tests for the title bar + 2x2 grid split."""

    def test_even_split(self):
        """Test an 80x25 terminal splits into equal quarters."""
        layout = compute_layout(80, 25)

        assert layout.title.height == 1
        assert layout.title.width == 80
        assert layout.row_heights == (12, 12)
        assert layout.column_widths == (40, 40)

    def test_odd_split_gives_remainder_to_bottom_right(self):
        """Test odd sizes give the extra cell to the bottom row and right column."""
        layout = compute_layout(81, 24)

        assert layout.row_heights == (11, 12)
        assert layout.column_widths == (40, 41)
        files = layout.cells[MetricKind.FILES]
        assert (files.x, files.y) == (40, 12)

    def test_cells_cover_grid(self):
        """Test the four cells tile the area under the title."""
        layout = compute_layout(100, 31)
        cells = layout.cells

        assert cells[MetricKind.CPU].y == 1
        assert cells[MetricKind.MEMORY].x == cells[MetricKind.CPU].width
        assert sum(c.width * c.height for c in cells.values()) == 100 * 30

    def test_degenerate_size(self):
        """Test tiny or negative sizes never produce negative regions."""
        layout = compute_layout(0, 0)

        for region in layout.cells.values():
            assert region.width >= 0
            assert region.height >= 0

    def test_too_small(self):
        """Test the minimum size check."""
        assert is_too_small(10, 24)
        assert is_too_small(80, 3)
        assert not is_too_small(80, 24)


class TestUsageColor:
    """Tests for the threshold bands."""

    @pytest.mark.parametrize(
        ("latest", "expected"),
        [
            (0.0, COLOR_OK),
            (49.0, COLOR_OK),
            (50.0, COLOR_WARNING),
            (74.0, COLOR_WARNING),
            (75.0, COLOR_CRITICAL),
            (150.0, COLOR_CRITICAL),
        ],
    )
    def test_bands(self, latest, expected):
        """Test green, yellow and red by remaining headroom."""
        assert usage_color(latest, 100.0) == expected

    def test_no_ceiling(self):
        """Test unscaled graphs are white."""
        assert usage_color(10.0, None) == COLOR_UNSCALED
        assert usage_color(10.0, 0.0) == COLOR_UNSCALED

    def test_no_sample(self):
        """Test an empty series is white."""
        assert usage_color(None, 100.0) == COLOR_UNSCALED


class TestPanelTitle:
    """Tests for graph titles."""

    def test_cpu(self):
        """Test the CPU title format."""
        assert panel_title(MetricKind.CPU, 12.3456, 100.0, 1.0) == "CPU 12.35% (1.0x)"

    def test_memory(self):
        """Test memory is shown in MB against total memory."""
        title = panel_title(MetricKind.MEMORY, 512 * MB, 16000 * MB, 2.0)

        assert title == "MEM 512.00MB / 16000.00MB (2.0x)"

    def test_memory_without_total(self):
        """Test an unknown total shows a question mark."""
        assert panel_title(MetricKind.MEMORY, MB, None, 1.0) == "MEM 1.00MB / ?MB (1.0x)"

    def test_network(self):
        """Test the network title format."""
        assert panel_title(MetricKind.NETWORK, 42.0, 100.0, 1.5) == "Net 42 (1.5x)"

    def test_files(self):
        """Test the open files title shows the limit."""
        assert panel_title(MetricKind.FILES, 12.0, 1024.0, 1.0) == "Files 12 / 1024 (1.0x)"

    def test_failed_value_is_shown_as_is(self):
        """Test the sentinel is displayed rather than hidden."""
        assert panel_title(MetricKind.CPU, FAILED, 100.0, 1.0) == "CPU -1.00% (1.0x)"
        assert panel_title(MetricKind.MEMORY, FAILED, None, 1.0).startswith("MEM -1.00MB")
        assert panel_title(MetricKind.FILES, FAILED, None, 1.0) == "Files -1 / ? (1.0x)"

    def test_empty_series(self):
        """Test a metric without samples shows zero."""
        assert panel_title(MetricKind.NETWORK, None, 100.0, 1.0) == "Net 0 (1.0x)"


class TestSparkline:
    """Tests for block-character rendering."""

    def test_newest_on_the_right(self):
        """Test index 0 (newest) is drawn at the right edge."""
        line = sparkline((100.0, 0.0), 2, 100.0)

        assert line == SPARK[0] + SPARK[-1]

    def test_pads_to_width(self):
        """Test short series are right-aligned."""
        line = sparkline((50.0,), 5, 100.0)

        assert len(line) == 5
        assert line.startswith("    ")

    def test_truncates_to_width(self):
        """Test only the newest samples fit."""
        line = sparkline(tuple(float(i) for i in range(10)), 3, 10.0)

        assert len(line) == 3

    def test_clips_above_ceiling(self):
        """Test values over the ceiling draw a full block."""
        assert sparkline((500.0,), 1, 100.0) == SPARK[-1]

    def test_failed_draws_empty_level(self):
        """Test failed samples stay visible as gaps."""
        assert sparkline((FAILED, 100.0), 2, 100.0) == SPARK[-1] + SPARK[0]

    def test_unscaled_uses_visible_max(self):
        """Test the largest visible sample fills the column when no ceiling."""
        assert sparkline((10.0, 5.0), 2, None)[-1] == SPARK[-1]

    def test_all_failed_unscaled(self):
        """Test a series of failures without a ceiling renders blanks."""
        assert sparkline((FAILED, FAILED), 2, None) == SPARK[0] * 2

    def test_multi_row(self):
        """Test a full value fills every row and a half value the bottom half."""
        rows = sparkline_rows((50.0, 100.0), 2, 2, 100.0)

        assert len(rows) == 2
        assert rows[0] == SPARK[-1] + SPARK[0]
        assert rows[1] == SPARK[-1] + SPARK[-1]

    def test_zero_size(self):
        """Test zero width or height yields nothing."""
        assert sparkline_rows((1.0,), 0, 3, 10.0) == []
        assert sparkline_rows((1.0,), 3, 0, 10.0) == []


class TestBuildPanels:
    """Tests for turning a snapshot into panel views."""

    def _store(self) -> HistoryStore:
        store = HistoryStore(capacity=10, zoom=ZoomConfig(cpu=2.0))
        for value in (10.0, 40.0):
            store.push(MetricKind.CPU, value)
        store.push(MetricKind.MEMORY, 100.0 * MB)
        store.push(MetricKind.NETWORK, FAILED)
        return store

    def test_grid_order_and_titles(self):
        """Test panels come in CPU, MEM, Net, Files order with titles."""
        snapshot = self._store().snapshot(
            "app (7)", 80, 25, natural_max={MetricKind.CPU: 100.0, MetricKind.MEMORY: 1000.0 * MB}
        )
        panels = build_panels(snapshot)

        assert [p.kind for p in panels] == [
            MetricKind.CPU,
            MetricKind.MEMORY,
            MetricKind.NETWORK,
            MetricKind.FILES,
        ]
        assert panels[0].title == "CPU 40.00% (2.0x)"
        assert panels[0].ceiling == 50.0
        # 40 of a zoomed 50 leaves 20% headroom
        assert panels[0].color == COLOR_CRITICAL
        assert panels[1].color == COLOR_OK
        assert panels[2].color == COLOR_UNSCALED
        assert panels[3].values == ()

    def test_does_not_mutate_snapshot(self):
        """Test rendering leaves the snapshot unchanged."""
        snapshot = self._store().snapshot("app (7)", 80, 25, natural_max={MetricKind.CPU: 100.0})
        series_before = dict(snapshot.series)

        build_panels(snapshot)

        assert snapshot.series == series_before

    def test_values_limited_to_cell_width(self):
        """Test panels carry no more samples than the cell is wide."""
        store = HistoryStore(capacity=100)
        for i in range(100):
            store.push(MetricKind.CPU, float(i))
        panels = build_panels(store.snapshot("app (7)", 40, 25))

        assert len(panels[0].values) == 20
        assert panels[0].values[0] == 99.0

    def test_title_text(self):
        """Test the title bar flags an exited process."""
        store = HistoryStore()

        assert title_text(store.snapshot("app (7)", 80, 25)) == "app (7)"
        assert title_text(store.snapshot("app (7)", 80, 25, exited=True)) == "app (7) - process exited"
