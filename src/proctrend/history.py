"""Rolling per-metric history for the dashboard."""

from collections.abc import Mapping

from proctrend.models import DashboardSnapshot, MetricKind, MetricSeries, ZoomConfig


class HistoryStore:
    """
    Four bounded, newest-first series plus their zoom factors.

    Owned by the sampler: only the sampler pushes. Readers get copies via
    snapshot() and never see the live series.
    """

    def __init__(
        self,
        capacity: int | Mapping[MetricKind, int] = 512,
        zoom: ZoomConfig | None = None,
    ) -> None:
        """
        Initialize the HistoryStore.

        Args:
            capacity: Samples kept per metric, either one value for all four
                metrics or a {MetricKind: capacity} mapping.
            zoom: Display zoom factors. Defaults to 1.0 for every metric.
        """
        if isinstance(capacity, int):
            capacities = {kind: capacity for kind in MetricKind}
        else:
            capacities = {kind: capacity.get(kind, 512) for kind in MetricKind}
        self._series = {kind: MetricSeries(capacities[kind]) for kind in MetricKind}
        self._zoom = zoom or ZoomConfig()

    @property
    def zoom(self) -> ZoomConfig:
        """Current zoom factors."""
        return self._zoom

    def series(self, kind: MetricKind) -> MetricSeries:
        """Live series of a metric. For the owning sampler only."""
        return self._series[kind]

    def push(self, kind: MetricKind, value: float) -> None:
        """Prepend a sample to one metric's series."""
        self._series[kind].push(value)

    def push_all(self, samples: Mapping[MetricKind, float]) -> None:
        """Push one tick's samples."""
        for kind, value in samples.items():
            self.push(kind, value)

    def set_zoom(self, kind: MetricKind, factor: float) -> None:
        """Change one metric's zoom factor. Stored samples are left untouched."""
        factors = {k: self._zoom.factor(k) for k in MetricKind}
        factors[kind] = factor
        self._zoom = ZoomConfig.from_mapping(factors)

    def snapshot(
        self,
        process_label: str,
        width: int,
        height: int,
        natural_max: Mapping[MetricKind, float | None] | None = None,
        exited: bool = False,
        ticks: int = 0,
    ) -> DashboardSnapshot:
        """Copy the current state into an immutable DashboardSnapshot."""
        return DashboardSnapshot(
            process_label=process_label,
            series={kind: series.values() for kind, series in self._series.items()},
            zoom=self._zoom,
            natural_max=dict(natural_max or {}),
            width=width,
            height=height,
            exited=exited,
            ticks=ticks,
        )
