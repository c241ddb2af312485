"""YAML format for metric tables.

A metric file is either a list of metrics or a mapping with a ``metrics``
list:

```yaml
name: skylake

metrics:
  - name: IPC
    expr: inst_retired.any / cpu_clk_unhalted.thread
    groups: [TopdownL1]
    description: Instructions per cycle

  - name: SMT_Cycles
    expr: "cpu_clk_unhalted.thread_any / 2 if #smt_on else cpu_clk_unhalted.thread"

  - MetricName: Frontend_Bound
    MetricExpr: 100 * d_ratio(idq_uops_not_delivered.core, 4 * SMT_Cycles)
    MetricGroup: TopdownL1;Frontend
    ScaleUnit: 1%
```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from metrickit.metrics.table import Metric, MetricTable


def _parse_metrics_content(data: Any) -> MetricTable:
    """Parse a loaded YAML/JSON document into a MetricTable."""
    from metrickit.exceptions import DuplicateKeyError, ParseError

    if data is None:
        return MetricTable()
    if isinstance(data, dict):
        entries = data.get("metrics", [])
    elif isinstance(data, list):
        entries = data
    else:
        raise ParseError(f"Invalid metric document: expected list or mapping, got {type(data).__name__}")

    if not isinstance(entries, list):
        raise ParseError("'metrics' must be a list")

    table = MetricTable()
    for item in entries:
        if not isinstance(item, dict):
            raise ParseError(f"Invalid metric specification: {item}")
        try:
            table.add(Metric.from_dict(item))
        except DuplicateKeyError as e:
            raise ParseError(f"Duplicate metric '{e.key}'") from e
        except ValueError as e:
            raise ParseError(str(e)) from e
    return table


def load_yaml(path: str | Path) -> MetricTable:
    """Load a metric table from a YAML file.

    Args:
        path: Path to YAML file

    Returns:
        MetricTable
    """
    try:
        import yaml
    except ImportError as exc:
        raise ImportError(
            "PyYAML is required for YAML format. "
            "Install with: pip install pyyaml"
        ) from exc

    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f)

    return _parse_metrics_content(data)


def yaml_to_table(content: str) -> MetricTable:
    """Parse a YAML string into a MetricTable."""
    try:
        import yaml
    except ImportError as exc:
        raise ImportError(
            "PyYAML is required for YAML format. "
            "Install with: pip install pyyaml"
        ) from exc

    return _parse_metrics_content(yaml.safe_load(content))


def metrics_to_yaml(table: MetricTable, name: str | None = None) -> str:
    """Export a metric table to YAML.

    Args:
        table: Metrics to export
        name: Optional table name written as the top-level ``name`` key

    Returns:
        YAML string representation
    """
    try:
        import yaml
    except ImportError as exc:
        raise ImportError(
            "PyYAML is required for YAML format. "
            "Install with: pip install pyyaml"
        ) from exc

    data: dict[str, Any] = {}
    if name:
        data["name"] = name
    data["metrics"] = table.to_list()
    return yaml.dump(data, default_flow_style=False, sort_keys=False)
