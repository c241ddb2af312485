"""Unified metric loading interface.

Provides a single entry point for loading metric tables from any supported
format.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pandas as pd

    from metrickit.metrics.table import MetricTable


def load_metrics(
    source: str | Path | dict | list,
    format: str | None = None,
) -> MetricTable:
    """Load a metric table from file, dict or list.

    Automatically detects format based on file extension:
    - .yaml, .yml: YAML format
    - .json: JSON format (including perf pmu-events metric files)
    - dict/list: Python structure (YAML-like)

    Args:
        source: File path, dictionary or list of metric entries
        format: Override format detection ('yaml', 'json', 'dict')

    Returns:
        MetricTable

    Raises:
        ValueError: If format cannot be determined
        FileNotFoundError: If file does not exist
        ParseError: If parsing fails

    Examples:
        # From YAML file
        table = load_metrics("metrics.yaml")

        # From a list
        table = load_metrics([
            {"name": "IPC", "expr": "instructions / cycles"},
        ])
    """

    # Handle dict / list input
    if isinstance(source, (dict, list)):
        if format and format != "dict":
            raise ValueError(f"Dict input but format='{format}' specified")
        from metrickit.io.formats.yaml_format import _parse_metrics_content
        return _parse_metrics_content(source)

    # Handle file path
    path = Path(source)

    if not path.exists():
        raise FileNotFoundError(f"Metric file not found: {path}")

    # Determine format
    if format is None:
        suffix = path.suffix.lower()
        if suffix in (".yaml", ".yml"):
            format = "yaml"
        elif suffix == ".json":
            format = "json"
        else:
            raise ValueError(
                f"Cannot determine format from extension '{suffix}'. "
                "Use format='yaml' or format='json' explicitly."
            )

    # Load based on format
    if format == "yaml":
        from metrickit.io.formats.yaml_format import load_yaml
        return load_yaml(path)

    elif format == "json":
        from metrickit.io.formats.json_format import load_json
        return load_json(path)

    else:
        raise ValueError(f"Unknown format: '{format}'. Supported: 'yaml', 'json'")


def load_counts(path: str | Path) -> pd.DataFrame:
    """Load event counts from CSV.

    One row per sample, one column per event. An ``interval``, ``time`` or
    ``period`` column, if present, becomes the index.

    Raises:
        FileNotFoundError: If file does not exist
    """
    import pandas as pd

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Counts file not found: {path}")

    df = pd.read_csv(path)
    for index_col in ("interval", "time", "period"):
        if index_col in df.columns:
            return df.set_index(index_col)
    return df
