"""JSON format for metric tables.

Accepts the same document shapes as the YAML format, including perf
pmu-events metric files (a list of objects with ``MetricName`` and
``MetricExpr``).
"""

from __future__ import annotations

import json
from pathlib import Path

from metrickit.io.formats.yaml_format import _parse_metrics_content
from metrickit.metrics.table import MetricTable


def load_json(path: str | Path) -> MetricTable:
    """Load a metric table from a JSON file."""
    from metrickit.exceptions import ParseError

    path = Path(path)
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ParseError(f"{path}: {e}") from e
    return _parse_metrics_content(data)


def json_to_table(content: str) -> MetricTable:
    """Parse a JSON string into a MetricTable."""
    from metrickit.exceptions import ParseError

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ParseError(str(e)) from e
    return _parse_metrics_content(data)


def metrics_to_json(table: MetricTable) -> str:
    """Export a metric table to JSON in pmu-events spelling."""
    entries = []
    for metric in table:
        entry = {"MetricName": metric.name, "MetricExpr": metric.expr}
        if metric.groups:
            entry["MetricGroup"] = ";".join(metric.groups)
        if metric.description:
            entry["BriefDescription"] = metric.description
        if metric.scale_unit:
            entry["ScaleUnit"] = metric.scale_unit
        entries.append(entry)
    return json.dumps(entries, indent=4)
