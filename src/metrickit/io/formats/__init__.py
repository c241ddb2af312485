"""Metric file formats: YAML, JSON."""

from metrickit.io.formats.json_format import (
    json_to_table,
    load_json,
    metrics_to_json,
)
from metrickit.io.formats.yaml_format import (
    load_yaml,
    metrics_to_yaml,
    yaml_to_table,
)

__all__ = [
    "load_yaml",
    "yaml_to_table",
    "metrics_to_yaml",
    "load_json",
    "json_to_table",
    "metrics_to_json",
]
