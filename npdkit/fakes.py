"""Inspectable stand-ins for metrics, for use in tests."""

from __future__ import annotations

from dataclasses import replace

from npdkit.metrics import Aggregation, Int64MetricRepresentation


class FakeInt64Metric:
    """An integer metric that keeps its data points in memory for inspection."""

    def __init__(self, name: str, aggregation, tag_names) -> None:
        if not name:
            raise ValueError("metric name must not be empty")
        try:
            self.aggregation = Aggregation(aggregation)
        except ValueError:
            raise ValueError(f"unsupported aggregation type {aggregation!r}") from None
        self.name = name
        self._allowed_tags = frozenset(tag_names)
        self._metrics: list[Int64MetricRepresentation] = []

    def __repr__(self) -> str:
        return f"FakeInt64Metric({self.name!r}, {self.aggregation.value!r})"

    def record(self, tags: dict[str, str], measurement: int) -> None:
        """Record a measurement, using ``tags`` as metric labels."""
        for tag_name in tags:
            if tag_name not in self._allowed_tags:
                raise ValueError(f"tag {tag_name!r} is not allowed")
        labels = dict(tags)

        metric = next((m for m in self._metrics if m.labels == labels), None)
        if metric is None:
            metric = Int64MetricRepresentation(self.name, labels, 0)
            self._metrics.append(metric)

        if self.aggregation is Aggregation.LAST_VALUE:
            metric.value = measurement
        else:
            metric.value += measurement

    def list_metrics(self) -> list[Int64MetricRepresentation]:
        """Return a snapshot of the current data points."""
        return [replace(metric, labels=dict(metric.labels)) for metric in self._metrics]