"""Parse-and-run entry points over source text."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from metrickit.exceptions import MetricKitError
from metrickit.expr.evaluator import evaluate, find_ids
from metrickit.expr.parser import parse

if TYPE_CHECKING:
    from metrickit.expr.context import ExprContext
    from metrickit.expr.ids import IdsSet

logger = logging.getLogger(__name__)


def _effective_runtime(ctx: ExprContext, runtime: int | None) -> int:
    if runtime is None:
        return ctx.runtime
    if runtime < 0:
        raise ValueError(f"runtime must be >= 0, got {runtime}")
    return runtime


def expr_parse(source: str, ctx: ExprContext, runtime: int | None = None) -> float:
    """Parse ``source`` and evaluate it against ``ctx``.

    Args:
        source: Formula text.
        ctx: Context supplying identifier values.
        runtime: Literal-mode parameter (default: ``ctx.runtime``). Stored on
            the context once the formula parses, so metric references
            resolved during evaluation see the same value.

    Returns:
        The formula's value.

    Raises:
        ValueError: ``runtime`` is negative.
        ExprSyntaxError: Malformed source. The context is left untouched.
        EvaluationError: Unbound identifier, division by zero or a
            reference cycle.
    """
    runtime = _effective_runtime(ctx, runtime)
    node = parse(source, runtime)
    ctx.runtime = runtime
    return evaluate(node, ctx)


def expr_try_parse(
    source: str, ctx: ExprContext, runtime: int | None = None
) -> tuple[float, int]:
    """Like :func:`expr_parse` but returns ``(value, status)``.

    Status is 0 on success and -1 on failure, in which case the value is NaN.
    """
    try:
        return expr_parse(source, ctx, runtime), 0
    except (MetricKitError, ValueError) as e:
        logger.debug("failed to evaluate %r: %s", source, e)
        return float("nan"), -1


def expr_find_ids(
    source: str,
    exclude: str | Iterable[str] | None,
    ctx: ExprContext,
    runtime: int | None = None,
) -> IdsSet:
    """Add the identifiers ``source`` needs to ``ctx.ids``.

    Args:
        source: Formula text.
        exclude: Name or names never reported (typically the metric's own
            name).
        ctx: Context receiving the identifiers; existing entries are kept.
        runtime: Literal-mode parameter substituted for ``?`` (default:
            ``ctx.runtime``). ``ctx.runtime`` itself is not changed.

    Returns:
        ``ctx.ids``.

    Raises:
        ValueError: ``runtime`` is negative.
        ExprSyntaxError: Malformed source. Unbound identifiers and zero
            denominators are not errors here.
    """
    runtime = _effective_runtime(ctx, runtime)
    if exclude is None:
        names: Iterable[str] = ()
    elif isinstance(exclude, str):
        names = (exclude,)
    else:
        names = exclude
    return find_ids(parse(source, runtime), ctx, names)
