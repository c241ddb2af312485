"""Metric tables: definitions, event resolution, computation."""

from metrickit.metrics.compute import (
    compute_metric,
    compute_metrics,
    compute_metrics_frame,
    metric_events,
)
from metrickit.metrics.table import Metric, MetricTable, parse_scale_unit

__all__ = [
    "Metric",
    "MetricTable",
    "parse_scale_unit",
    "metric_events",
    "compute_metric",
    "compute_metrics",
    "compute_metrics_frame",
]
