"""Recursive-descent parser for metric formulas.

Precedence, lowest to highest::

    A if C else B      right-associative, C true iff nonzero
    |                  logical or
    &                  logical and
    < >                comparison, yields 1.0 or 0.0
    + -
    * / %
    -x                 unary negate
    primary            number, identifier, #literal, (expr), func(a, b)
"""

from __future__ import annotations

import logging
from typing import NoReturn

from metrickit.exceptions import ExprSyntaxError
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
)
from metrickit.system import HOST_LITERALS

logger = logging.getLogger(__name__)

# Binary operator binding strength; higher binds tighter.
_PRECEDENCE: dict[str, int] = {
    "|": 1,
    "&": 2,
    "<": 3,
    ">": 3,
    "+": 4,
    "-": 4,
    "*": 5,
    "/": 5,
    "%": 5,
}

# Parenthesis, function-argument and else-chain nesting limit.
MAX_DEPTH = 128

_ARITY: dict[FuncKind, int] = {
    FuncKind.MIN: 2,
    FuncKind.MAX: 2,
    FuncKind.D_RATIO: 2,
}


class Parser:
    """Parse a token stream into a :data:`~metrickit.expr.nodes.Node`."""

    def __init__(self, tokens: list[Token], source: str = "") -> None:
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self.depth = 0

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind is not TokenKind.EOF:
            self.pos += 1
        return token

    def expect(self, kind: TokenKind, what: str) -> Token:
        token = self.peek()
        if token.kind is not kind:
            self.error(f"Expected {what}", token)
        return self.advance()

    def error(self, message: str, token: Token) -> NoReturn:
        logger.debug("%s at %d in %r", message, token.pos, self.source)
        raise ExprSyntaxError(message, token.pos, str(token))

    def parse(self) -> Node:
        """Parse a whole formula; trailing tokens are an error."""
        node = self.parse_expr()
        token = self.peek()
        if token.kind is not TokenKind.EOF:
            self.error("Unexpected token", token)
        return node

    def parse_expr(self) -> Node:
        self.depth += 1
        try:
            if self.depth > MAX_DEPTH:
                self.error(f"Expression nested deeper than {MAX_DEPTH} levels", self.peek())
            true_branch = self.parse_binary()
            if self.peek().kind is not TokenKind.IF:
                return true_branch
            self.advance()
            condition = self.parse_binary()
            self.expect(TokenKind.ELSE, "'else'")
            false_branch = self.parse_expr()
            return Ternary(condition, true_branch, false_branch)
        finally:
            self.depth -= 1

    def parse_binary(self, min_prec: int = 1) -> Node:
        """Precedence climbing: operators binding at least ``min_prec``."""
        left = self.parse_unary()
        while True:
            token = self.peek()
            prec = _PRECEDENCE.get(token.text, 0) if token.kind is TokenKind.OP else 0
            if prec < min_prec:
                return left
            self.advance()
            right = self.parse_binary(prec + 1)
            left = BinaryOp(BinaryKind(token.text), left, right)

    def parse_unary(self) -> Node:
        negations = 0
        while self.peek().kind is TokenKind.OP and self.peek().text == "-":
            self.advance()
            negations += 1
        node = self.parse_primary()
        for _ in range(negations):
            node = Negate(node)
        return node

    def parse_primary(self) -> Node:
        token = self.peek()
        kind = token.kind

        if kind is TokenKind.NUMBER:
            self.advance()
            return Number(float(token.text))

        if kind is TokenKind.IDENT:
            self.advance()
            if self.peek().kind is TokenKind.LPAREN:
                self.error("Unknown function", token)
            return Identifier(token.text)

        if kind is TokenKind.LITERAL:
            self.advance()
            if token.text not in HOST_LITERALS:
                self.error("Unknown literal", token)
            return HostLiteral(token.text)

        if kind is TokenKind.LPAREN:
            self.advance()
            node = self.parse_expr()
            self.expect(TokenKind.RPAREN, "')'")
            return node

        if kind is TokenKind.FUNC:
            return self.parse_call()

        if kind is TokenKind.EOF:
            self.error("Missing operand", token)
        self.error("Unexpected token", token)

    def parse_call(self) -> Node:
        name = self.advance()
        func = FuncKind(name.text)
        self.expect(TokenKind.LPAREN, f"'(' after {name.text}")

        args: list[Node] = [self.parse_expr()]
        while self.peek().kind is TokenKind.COMMA:
            self.advance()
            args.append(self.parse_expr())
        self.expect(TokenKind.RPAREN, "')'")

        if len(args) != _ARITY[func]:
            logger.debug("%s called with %d arguments", func.value, len(args))
            raise ExprSyntaxError(
                f"{func.value} takes {_ARITY[func]} arguments, got {len(args)}",
                name.pos,
                name.text,
            )
        return FunctionCall(func, tuple(args))


def parse(source: str, runtime: int = 0) -> Node:
    """Parse formula source into an AST.

    Args:
        source: Formula text.
        runtime: Literal-mode parameter substituted for ``?`` in literal
            identifiers (0 disables substitution).

    Raises:
        ExprSyntaxError: If the source is malformed.
    """
    return Parser(tokenize(source, runtime), source).parse()
