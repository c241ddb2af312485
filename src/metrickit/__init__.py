"""metrickit: performance-metric formulas over event counters.

Evaluate formulas such as ``inst_retired.any / cpu_clk_unhalted.thread``
against measured counts, or find which events a formula needs before
measuring anything.
"""

from metrickit._version import __version__
from metrickit.exceptions import (
    DivisionByZeroError,
    DuplicateKeyError,
    EvaluationError,
    ExprSyntaxError,
    MetricKitError,
    ParseError,
    ReferenceCycleError,
    UndefinedIdentifierError,
    UnknownMetricError,
)
from metrickit.expr import (
    ExprContext,
    IdsSet,
    expr_find_ids,
    expr_parse,
    expr_try_parse,
    ids_union,
    parse,
)
from metrickit.io import load_counts, load_metrics
from metrickit.metrics import (
    Metric,
    MetricTable,
    compute_metric,
    compute_metrics,
    compute_metrics_frame,
    metric_events,
)
from metrickit.system import FixedSystem, HostSystem

__all__ = [
    "__version__",
    "MetricKitError",
    "ExprSyntaxError",
    "EvaluationError",
    "UndefinedIdentifierError",
    "DivisionByZeroError",
    "ReferenceCycleError",
    "DuplicateKeyError",
    "UnknownMetricError",
    "ParseError",
    "ExprContext",
    "IdsSet",
    "ids_union",
    "parse",
    "expr_parse",
    "expr_try_parse",
    "expr_find_ids",
    "load_metrics",
    "load_counts",
    "Metric",
    "MetricTable",
    "metric_events",
    "compute_metric",
    "compute_metrics",
    "compute_metrics_frame",
    "HostSystem",
    "FixedSystem",
]
