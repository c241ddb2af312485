"""Metric formula language: parser, evaluator and identifier discovery."""

from metrickit.expr.api import expr_find_ids, expr_parse, expr_try_parse
from metrickit.expr.context import ExprContext, IdData, IdValue, MetricRef
from metrickit.expr.evaluator import collect_ids, evaluate, find_ids
from metrickit.expr.ids import IdsSet, ids_union
from metrickit.expr.lexer import Token, TokenKind, tokenize
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
    identifiers,
)
from metrickit.expr.parser import Parser, parse

__all__ = [
    "expr_parse",
    "expr_try_parse",
    "expr_find_ids",
    "ExprContext",
    "IdData",
    "IdValue",
    "MetricRef",
    "evaluate",
    "find_ids",
    "collect_ids",
    "IdsSet",
    "ids_union",
    "Token",
    "TokenKind",
    "tokenize",
    "Node",
    "Number",
    "Identifier",
    "HostLiteral",
    "BinaryKind",
    "BinaryOp",
    "Negate",
    "Ternary",
    "FuncKind",
    "FunctionCall",
    "identifiers",
    "Parser",
    "parse",
]
