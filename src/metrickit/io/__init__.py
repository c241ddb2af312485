"""Input/output: metric files and counter samples."""

from metrickit.io.load import load_counts, load_metrics

__all__ = ["load_metrics", "load_counts"]
