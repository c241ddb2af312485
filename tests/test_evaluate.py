"""Tests for evaluate mode."""

from __future__ import annotations

import math

import pytest

from metrickit.exceptions import (
    DivisionByZeroError,
    EvaluationError,
    ExprSyntaxError,
    ReferenceCycleError,
    UndefinedIdentifierError,
)
from metrickit.expr import ExprContext, IdValue, expr_parse, expr_try_parse
from metrickit.expr.evaluator import evaluate
from metrickit.expr.nodes import BinaryKind, BinaryOp, Identifier, Number
from metrickit.expr.parser import parse
from metrickit.system import FixedSystem


@pytest.mark.parametrize(
    "source,expected",
    [
        ("1+1", 2),
        ("FOO+BAR", 3),
        ("(BAR/2)%2", 1),
        ("1 - -4", 5),
        ("(FOO-1)*2 + (BAR/2)%2 - -4", 5),
        ("1-1 | 1", 1),
        ("1-1 & 1", 0),
        ("min(1,2) + 1", 2),
        ("max(1,2) + 1", 3),
        ("1+1 if 3*4 else 0", 2),
        ("1.1 + 2.1", 3.2),
        (".1 + 2.", 2.1),
        ("d_ratio(1, 2)", 0.5),
        ("d_ratio(2.5, 0)", 0),
        ("1.1 < 2.2", 1),
        ("2.2 > 1.1", 1),
        ("1.1 < 1.1", 0),
        ("2.2 > 2.2", 0),
        ("2.2 < 1.1", 0),
        ("1.1 > 2.2", 0),
    ],
)
def test_expression_values(ctx, source, expected):
    assert expr_parse(source, ctx) == pytest.approx(expected)


def test_division_by_zero(ctx):
    with pytest.raises(DivisionByZeroError):
        expr_parse("FOO/0", ctx)


def test_missing_operand(ctx):
    with pytest.raises(ExprSyntaxError):
        expr_parse("BAR/", ctx)


class TestOperators:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ("7 % 3", 1),
            ("-7 % 3", -1),
            ("7 % -3", 1),
            ("7.9 % 3.2", 1),
            ("0 | 0", 0),
            ("0 | 2", 1),
            ("3 & 0.5", 1),
            ("0 & 1", 0),
            ("min(3, -1)", -1),
            ("max(-3, -1)", -1),
            ("d_ratio(-3, 4)", -0.75),
            ("-(2 * 3)", -6),
            ("2 * -3", -6),
            ("10 / 4", 2.5),
            ("1e3 / 10", 100),
        ],
    )
    def test_values(self, ctx, source, expected):
        assert expr_parse(source, ctx) == pytest.approx(expected)

    def test_modulo_by_truncated_zero(self, ctx):
        with pytest.raises(DivisionByZeroError):
            expr_parse("5 % 0.5", ctx)

    def test_modulo_non_finite(self, ctx):
        ctx.add_id_val("INF", math.inf)
        with pytest.raises(EvaluationError):
            expr_parse("INF % 2", ctx)

    def test_division_by_zero_is_zero_division(self, ctx):
        with pytest.raises(ZeroDivisionError):
            expr_parse("1 / (BAR - 2)", ctx)

    def test_d_ratio_zero_denominator_expression(self, ctx):
        assert expr_parse("d_ratio(FOO, BAR - 2)", ctx) == 0.0


class TestIdentifiers:
    def test_undefined_identifier(self, ctx):
        with pytest.raises(UndefinedIdentifierError) as excinfo:
            expr_parse("FOO + BAZ", ctx)
        assert excinfo.value.name == "BAZ"

    def test_pending_identifier_is_undefined(self, ctx):
        ctx.add_id("PENDING")
        with pytest.raises(UndefinedIdentifierError):
            expr_parse("PENDING * 2", ctx)

    def test_min_max_need_both_arguments(self, ctx):
        with pytest.raises(UndefinedIdentifierError):
            expr_parse("max(FOO, MISSING)", ctx)

    def test_untaken_branch_not_evaluated(self, ctx):
        assert expr_parse("FOO if BAR else MISSING", ctx) == 1
        assert expr_parse("MISSING if FOO - 1 else BAR", ctx) == 2
        assert expr_parse("1 / 0 if 0 else 4", ctx) == 4

    def test_condition_is_required(self, ctx):
        with pytest.raises(UndefinedIdentifierError):
            expr_parse("1 if MISSING else 1", ctx)

    def test_literal_identifier_binding(self, ctx):
        ctx.add_id_val("EVENT1,param=3/", 10)
        assert expr_parse(r"EVENT1\,param\=?@ * 2", ctx, runtime=3) == 20
        assert ctx.runtime == 3

    def test_bound_value_replaced(self, ctx):
        ctx.add_id_val("FOO", 5)
        assert expr_parse("FOO", ctx) == 5


class TestHostLiterals:
    @pytest.mark.parametrize("smt,expected", [(True, 1.0), (False, 0.0)])
    def test_smt_on(self, smt, expected):
        ctx = ExprContext(system=FixedSystem(smt=smt))
        assert expr_parse("#smt_on", ctx) == expected

    def test_num_cpus(self):
        ctx = ExprContext(system=FixedSystem(cpus=8))
        assert expr_parse("#num_cpus * 2", ctx) == 16
        assert expr_parse("#num_cpus_online", ctx) == 8

    def test_smt_selects_branch(self):
        ctx = ExprContext(system=FixedSystem(smt=True))
        ctx.add_id_val("EVENT1", 7)
        assert expr_parse("EVENT1 if #smt_on else EVENT2", ctx) == 7


class TestMetricRefs:
    def test_reference_evaluated_and_cached(self, ctx):
        ctx.add_ref("SUM", "FOO + BAR")
        assert expr_parse("SUM * 2", ctx) == 6
        assert ctx.get_id("SUM") == IdValue(3.0)

    def test_nested_references(self, ctx):
        ctx.add_ref("A", "B + 1")
        ctx.add_ref("B", "BAR * 10")
        assert expr_parse("A", ctx) == 21

    def test_reference_cycle(self, ctx):
        ctx.add_ref("A", "B + 1")
        ctx.add_ref("B", "A * 2")
        with pytest.raises(ReferenceCycleError) as excinfo:
            expr_parse("A", ctx)
        assert excinfo.value.chain == ["A", "B", "A"]

    def test_reference_failure_propagates(self, ctx):
        ctx.add_ref("R", "FOO / 0")
        with pytest.raises(DivisionByZeroError):
            expr_parse("R + 1", ctx)


class TestStatusForm:
    def test_success(self, ctx):
        value, status = expr_try_parse("FOO + BAR", ctx)
        assert (value, status) == (3.0, 0)

    @pytest.mark.parametrize("source", ["FOO/0", "BAR/", "NOPE"])
    def test_failure(self, ctx, source):
        value, status = expr_try_parse(source, ctx)
        assert status == -1
        assert math.isnan(value)

    def test_negative_runtime_is_a_failure(self, ctx):
        value, status = expr_try_parse("1 + 1", ctx, runtime=-1)
        assert status == -1
        assert math.isnan(value)
        assert ctx.runtime == 0
        assert expr_try_parse("1 + 1", ctx) == (2.0, 0)

    def test_deep_nesting_is_a_failure(self, ctx):
        source = "(" * 300 + "1" + ")" * 300
        value, status = expr_try_parse(source, ctx)
        assert status == -1
        assert math.isnan(value)


class TestRuntime:
    def test_failed_parse_leaves_runtime(self, ctx):
        with pytest.raises(ExprSyntaxError):
            expr_parse("BAR/", ctx, runtime=5)
        assert ctx.runtime == 0

    def test_negative_runtime_rejected(self, ctx):
        with pytest.raises(ValueError):
            expr_parse("1", ctx, runtime=-1)
        assert ctx.runtime == 0

    def test_context_runtime_used_by_default(self):
        ctx = ExprContext(runtime=3, system=FixedSystem())
        ctx.add_id_val("EVENT1,param=3/", 4)
        assert expr_parse(r"EVENT1\,param\=?@", ctx) == 4

    def test_reference_sees_explicit_runtime(self):
        ctx = ExprContext(system=FixedSystem())
        ctx.add_id_val("EVENT1,param=2/", 6)
        ctx.add_ref("R", r"EVENT1\,param\=?@ / 2")
        assert expr_parse("R + 1", ctx, runtime=2) == 4


class TestContext:
    def test_has_and_del_id(self, ctx):
        assert ctx.has_id("FOO")
        ctx.del_id("FOO")
        assert not ctx.has_id("FOO")
        ctx.del_id("FOO")
        with pytest.raises(UndefinedIdentifierError):
            expr_parse("FOO + 1", ctx)

    def test_add_id_keeps_bound_value(self, ctx):
        ctx.add_id("BAR")
        ctx.add_id("NEW")
        assert ctx.has_id("NEW")
        assert expr_parse("BAR", ctx) == 2


def test_evaluate_hand_built_tree(ctx):
    node = BinaryOp(BinaryKind.MUL, Identifier("BAR"), Number(4.0))
    assert evaluate(node, ctx) == 8.0


def test_parsed_tree_reusable_across_contexts():
    node = parse("X * 2")
    first = ExprContext(system=FixedSystem())
    first.add_id_val("X", 1)
    second = ExprContext(system=FixedSystem())
    second.add_id_val("X", 5)
    assert evaluate(node, first) == 2
    assert evaluate(node, second) == 10
