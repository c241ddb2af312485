"""Event resolution and computation for metric tables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from metrickit.exceptions import MetricKitError, ReferenceCycleError
from metrickit.expr.api import expr_find_ids, expr_parse
from metrickit.expr.context import ExprContext
from metrickit.expr.ids import IdsSet
from metrickit.system import HostSystem

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from metrickit.metrics.table import MetricTable
    from metrickit.system import SystemInfo

logger = logging.getLogger(__name__)


def metric_events(
    table: MetricTable,
    name: str,
    runtime: int = 0,
    system: SystemInfo | None = None,
) -> IdsSet:
    """Events that must be counted to compute metric ``name``.

    Identifiers naming other metrics in ``table`` are replaced by those
    metrics' own events. A metric's own name is never reported.

    Raises:
        UnknownMetricError: ``name`` is not in the table.
        ReferenceCycleError: Metrics refer to each other in a loop.
        ExprSyntaxError: A formula on the way is malformed.
    """
    if system is None:
        system = HostSystem()
    events = IdsSet()
    _expand_events(table, name, runtime, system, events, ())
    return events


def _expand_events(
    table: MetricTable,
    name: str,
    runtime: int,
    system: SystemInfo,
    events: IdsSet,
    chain: tuple[str, ...],
) -> None:
    if name in chain:
        raise ReferenceCycleError([*chain, name])
    metric = table.get(name)
    ctx = ExprContext(runtime=runtime, system=system)
    for ident in expr_find_ids(metric.expr, metric.name, ctx, runtime):
        if ident in table:
            _expand_events(table, ident, runtime, system, events, (*chain, name))
        elif ident not in events:
            events.insert(ident)


def _context_for(
    table: MetricTable,
    counts: Mapping[str, float],
    runtime: int,
    system: SystemInfo,
) -> ExprContext:
    ctx = ExprContext(runtime=runtime, system=system)
    ctx.add_id_vals(counts)
    for metric in table:
        if metric.name not in counts:
            ctx.add_ref(metric.name, metric.expr)
    return ctx


def compute_metric(
    table: MetricTable,
    name: str,
    counts: Mapping[str, float],
    runtime: int = 0,
    system: SystemInfo | None = None,
) -> float:
    """Compute metric ``name`` from event counts.

    Other metrics of the table may be referenced by name. The metric's scale
    (from its ScaleUnit) is applied to the result.

    Raises:
        UnknownMetricError: ``name`` is not in the table.
        ExprSyntaxError: The formula is malformed.
        EvaluationError: A needed count is missing, or division by zero.
    """
    if system is None:
        system = HostSystem()
    metric = table.get(name)
    ctx = _context_for(table, counts, runtime, system)
    return expr_parse(metric.expr, ctx, runtime) * metric.scale


def compute_metrics(
    table: MetricTable,
    counts: Mapping[str, float],
    names: Sequence[str] | None = None,
    runtime: int = 0,
    system: SystemInfo | None = None,
) -> dict[str, float]:
    """Compute several metrics for one sample; failures become NaN."""
    if system is None:
        system = HostSystem()
    if names is None:
        names = table.names

    results: dict[str, float] = {}
    for name in names:
        try:
            results[name] = compute_metric(table, name, counts, runtime, system)
        except MetricKitError as e:
            logger.debug("metric %s not computable: %s", name, e)
            results[name] = np.nan
    return results


def compute_metrics_frame(
    table: MetricTable,
    counts: pd.DataFrame,
    names: Sequence[str] | None = None,
    runtime: int = 0,
    system: SystemInfo | None = None,
) -> pd.DataFrame:
    """Compute metrics for every row of a counts frame.

    Args:
        table: Metric definitions.
        counts: One row per sample, one column per event. Missing (NaN)
            cells are treated as unmeasured.
        names: Metrics to compute (default: all).
        runtime: Literal-mode parameter.
        system: Host collaborator (default: :class:`HostSystem`).

    Returns:
        DataFrame indexed like ``counts`` with one column per metric.
    """
    if system is None:
        system = HostSystem()
    if names is None:
        names = table.names
    for name in names:
        table.get(name)

    rows: list[dict[str, float]] = []
    for _, row in counts.iterrows():
        sample = {
            str(column): float(value)
            for column, value in row.items()
            if pd.notna(value)
        }
        rows.append(compute_metrics(table, sample, names, runtime, system))

    values = np.array(
        [[row[name] for name in names] for row in rows], dtype=float
    ).reshape(len(rows), len(names))
    return pd.DataFrame(values, index=counts.index, columns=list(names))
