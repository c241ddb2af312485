"""Formula evaluation and identifier discovery.

Both walks share the same shape over :data:`~metrickit.expr.nodes.Node`:

- :func:`evaluate` computes a value. Every identifier on the executed path
  must be bound; only the taken branch of a ternary is visited.
- :func:`find_ids` computes which identifiers an evaluation would need,
  without any values bound. Subtrees without identifiers are folded to
  constants so that ternaries with a constant condition (``#smt_on``) only
  require the selected branch.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, assert_never

from metrickit.exceptions import (
    DivisionByZeroError,
    EvaluationError,
    ReferenceCycleError,
    UndefinedIdentifierError,
)
from metrickit.expr.context import IdValue, MetricRef
from metrickit.expr.ids import IdsSet, ids_union
from metrickit.expr.nodes import (
    BinaryKind,
    BinaryOp,
    FuncKind,
    FunctionCall,
    HostLiteral,
    Identifier,
    Negate,
    Node,
    Number,
    Ternary,
)
from metrickit.expr.parser import parse
from metrickit.system import literal_value

if TYPE_CHECKING:
    from metrickit.expr.context import ExprContext
    from metrickit.system import SystemInfo

logger = logging.getLogger(__name__)


# =============================================================================
# Operators
# =============================================================================


def _to_long(value: float) -> int:
    if not math.isfinite(value):
        raise EvaluationError(f"Non-finite operand {value} to '%'")
    return int(value)


def apply_binary(kind: BinaryKind, left: float, right: float) -> float:
    """Apply a binary operator to two evaluated operands."""
    match kind:
        case BinaryKind.ADD:
            return left + right
        case BinaryKind.SUB:
            return left - right
        case BinaryKind.MUL:
            return left * right
        case BinaryKind.DIV:
            if right == 0.0:
                logger.debug("division by zero: %r / %r", left, right)
                raise DivisionByZeroError(f"Division by zero: {left} / 0")
            return left / right
        case BinaryKind.MOD:
            numerator = _to_long(left)
            denominator = _to_long(right)
            if denominator == 0:
                logger.debug("division by zero: %r %% %r", left, right)
                raise DivisionByZeroError(f"Modulo by zero: {left} % {right}")
            # Remainder takes the sign of the numerator.
            return float(math.fmod(numerator, denominator))
        case BinaryKind.LT:
            return 1.0 if left < right else 0.0
        case BinaryKind.GT:
            return 1.0 if left > right else 0.0
        case BinaryKind.OR:
            return 1.0 if (left != 0.0 or right != 0.0) else 0.0
        case BinaryKind.AND:
            return 1.0 if (left != 0.0 and right != 0.0) else 0.0
    assert_never(kind)


def apply_function(kind: FuncKind, a: float, b: float) -> float:
    """Apply a built-in function to two evaluated arguments."""
    match kind:
        case FuncKind.MIN:
            return a if a < b else b
        case FuncKind.MAX:
            return a if a > b else b
        case FuncKind.D_RATIO:
            # A zero denominator means no data, not a fault.
            if b == 0.0:
                return 0.0
            return a / b
    assert_never(kind)


# =============================================================================
# Evaluate mode
# =============================================================================


def _resolve_identifier(name: str, ctx: ExprContext, resolving: tuple[str, ...]) -> float:
    data = ctx.get_id(name)
    match data:
        case IdValue(value):
            return value
        case MetricRef(_, expr):
            if name in resolving:
                raise ReferenceCycleError([*resolving, name])
            value = evaluate(parse(expr, ctx.runtime), ctx, (*resolving, name))
            ctx.ids.set(name, IdValue(value))
            return value
        case None:
            logger.debug("identifier %r has no value", name)
            raise UndefinedIdentifierError(name)
    assert_never(data)


def evaluate(node: Node, ctx: ExprContext, _resolving: tuple[str, ...] = ()) -> float:
    """Evaluate ``node`` against the bindings in ``ctx``.

    Raises:
        UndefinedIdentifierError: An identifier on the executed path is unbound.
        DivisionByZeroError: ``/`` or ``%`` by zero.
        ReferenceCycleError: A metric reference refers back to itself.
    """
    match node:
        case Number(value):
            return value
        case Identifier(name):
            return _resolve_identifier(name, ctx, _resolving)
        case HostLiteral(name):
            return literal_value(ctx.system, name)
        case BinaryOp(kind, left, right):
            left_val = evaluate(left, ctx, _resolving)
            right_val = evaluate(right, ctx, _resolving)
            return apply_binary(kind, left_val, right_val)
        case Negate(operand):
            return -evaluate(operand, ctx, _resolving)
        case Ternary(condition, true_branch, false_branch):
            if evaluate(condition, ctx, _resolving) != 0.0:
                return evaluate(true_branch, ctx, _resolving)
            return evaluate(false_branch, ctx, _resolving)
        case FunctionCall(kind, args):
            a, b = (evaluate(arg, ctx, _resolving) for arg in args)
            return apply_function(kind, a, b)
    assert_never(node)


# =============================================================================
# Find-ids mode
# =============================================================================


@dataclass(slots=True)
class Partial:
    """Result of analysing a subtree without identifier values.

    A constant subtree has ``ids is None`` and a known ``value``. Otherwise
    the value is unknown (NaN) and ``ids`` holds the identifiers needed to
    compute it.
    """

    value: float
    ids: IdsSet | None = None

    @property
    def is_const(self) -> bool:
        return self.ids is None

    @classmethod
    def unknown(cls, ids: IdsSet | None = None) -> Partial:
        return cls(math.nan, ids if ids is not None else IdsSet())


def _union(*parts: Partial) -> Partial:
    ids: IdsSet | None = None
    for part in parts:
        ids = ids_union(ids, part.ids)
    return Partial.unknown(ids)


def _fold(compute: Callable[..., float], *parts: Partial) -> Partial:
    """Constant-fold when every part is constant, else union their ids."""
    if not all(part.is_const for part in parts):
        return _union(*parts)
    try:
        return Partial(compute(*(part.value for part in parts)))
    except EvaluationError:
        return Partial.unknown()


def collect_ids(node: Node, system: SystemInfo) -> Partial:
    """Analyse ``node``, returning its constant value or needed identifiers."""
    match node:
        case Number(value):
            return Partial(value)
        case Identifier(name):
            return Partial.unknown(IdsSet([name]))
        case HostLiteral(name):
            return Partial(literal_value(system, name))
        case BinaryOp(kind, left, right):
            return _fold(
                lambda a, b: apply_binary(kind, a, b),
                collect_ids(left, system),
                collect_ids(right, system),
            )
        case Negate(operand):
            return _fold(lambda a: -a, collect_ids(operand, system))
        case Ternary(condition, true_branch, false_branch):
            cond = collect_ids(condition, system)
            if cond.is_const:
                taken = true_branch if cond.value != 0.0 else false_branch
                return collect_ids(taken, system)
            when_true = collect_ids(true_branch, system)
            when_false = collect_ids(false_branch, system)
            if when_true.is_const and when_false.is_const and when_true.value == when_false.value:
                return Partial(when_true.value)
            return _union(cond, when_true, when_false)
        case FunctionCall(kind, args):
            return _fold(
                lambda a, b: apply_function(kind, a, b),
                *(collect_ids(arg, system) for arg in args),
            )
    assert_never(node)


def find_ids(node: Node, ctx: ExprContext, exclude: Iterable[str] = ()) -> IdsSet:
    """Add the identifiers ``node`` needs to ``ctx.ids``.

    Identifiers in ``exclude`` are not added; identifiers already in the
    context keep their datum. Never raises evaluation errors.

    Returns:
        The context's ids set.
    """
    found = collect_ids(node, ctx.system).ids or IdsSet()
    for name in exclude:
        found.remove(name)
    ctx.ids.union(found)
    return ctx.ids
