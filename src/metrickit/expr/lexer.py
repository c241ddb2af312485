"""Tokenizer for metric formulas.

Token classes:
- numbers: ``12``, ``1.5``, ``.1``, ``2.``, ``1e-3``
- identifiers: event or metric names such as ``inst_retired.any`` or
  ``cpu@cycles@``; ``\\,``, ``\\=`` and ``\\-`` escape characters that
  would otherwise end the name
- host literals: ``#smt_on``, ``#num_cpus``
- keywords ``if``/``else`` and the function names ``min``, ``max``, ``d_ratio``
- operators ``+ - * / % < > | &`` and punctuation ``( ) ,``

An identifier containing escapes is a literal-mode identifier. It must end
with ``@``. Its escapes are stripped, each ``@`` becomes ``/`` and, when the
runtime parameter is positive, each ``?`` is replaced by the runtime value:
``EVENT1\\,param\\=?@`` with runtime 3 is ``EVENT1,param=3/``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum, auto

from metrickit.exceptions import ExprSyntaxError

logger = logging.getLogger(__name__)


class TokenKind(Enum):
    """Lexical category of a token."""

    NUMBER = auto()
    IDENT = auto()
    LITERAL = auto()
    FUNC = auto()
    IF = auto()
    ELSE = auto()
    OP = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    EOF = auto()


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical atom.

    Attributes:
        kind: Token category.
        text: Cooked token value (identifier names have escapes resolved).
        pos: Offset of the first character in the source.
        raw: Source text of the token.
    """

    kind: TokenKind
    text: str
    pos: int
    raw: str = ""

    def __str__(self) -> str:
        return self.raw or self.text


FUNCTION_NAMES: frozenset[str] = frozenset({"min", "max", "d_ratio"})

_KEYWORDS: dict[str, TokenKind] = {"if": TokenKind.IF, "else": TokenKind.ELSE}

_PUNCT: dict[str, TokenKind] = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    ",": TokenKind.COMMA,
}

_TOKEN_RE = re.compile(
    r"""
    (?P<SKIP>\s+)
  | (?P<NUMBER>(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e-?[0-9]+)?)
  | (?P<IDENT>(?:\\[,=\-]|[A-Za-z0-9_.:@?])+)
  | (?P<BAD_ESCAPE>\\.?)
  | (?P<LITERAL>\#[A-Za-z0-9_]+)
  | (?P<OP>[-+*/%<>|&])
  | (?P<PUNCT>[(),])
    """,
    re.VERBOSE,
)


def _cook_identifier(raw: str, pos: int, runtime: int) -> str:
    """Resolve escapes, ``@`` and ``?`` in an identifier."""
    literal_mode = "\\" in raw
    if literal_mode and not raw.endswith("@"):
        raise ExprSyntaxError("Unterminated literal identifier", pos, raw)

    chars: list[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\":
            chars.append(raw[i + 1])
            i += 2
            continue
        if ch == "@":
            chars.append("/")
        elif ch == "?" and runtime > 0:
            chars.append(str(runtime))
        else:
            chars.append(ch)
        i += 1
    return "".join(chars)


def tokenize(source: str, runtime: int = 0) -> list[Token]:
    """Split formula source into tokens.

    Args:
        source: Formula text.
        runtime: Literal-mode parameter substituted for ``?`` (0 disables).

    Returns:
        Token list terminated by an EOF token.

    Raises:
        ExprSyntaxError: On characters that start no token or bad escapes.
    """
    if runtime < 0:
        raise ValueError(f"runtime must be >= 0, got {runtime}")

    tokens: list[Token] = []
    pos = 0
    end = len(source)
    while pos < end:
        match = _TOKEN_RE.match(source, pos)
        if match is None:
            logger.debug("unexpected character %r at %d in %r", source[pos], pos, source)
            raise ExprSyntaxError("Unexpected character", pos, source[pos])

        group = match.lastgroup
        raw = match.group()
        if group == "SKIP":
            pass
        elif group == "NUMBER":
            tokens.append(Token(TokenKind.NUMBER, raw, pos, raw))
        elif group == "IDENT":
            if raw in _KEYWORDS:
                tokens.append(Token(_KEYWORDS[raw], raw, pos, raw))
            elif raw in FUNCTION_NAMES:
                tokens.append(Token(TokenKind.FUNC, raw, pos, raw))
            else:
                name = _cook_identifier(raw, pos, runtime)
                tokens.append(Token(TokenKind.IDENT, name, pos, raw))
        elif group == "BAD_ESCAPE":
            if len(raw) == 1:
                raise ExprSyntaxError("Unterminated literal identifier", pos, raw)
            raise ExprSyntaxError("Invalid escape in identifier", pos, raw)
        elif group == "LITERAL":
            tokens.append(Token(TokenKind.LITERAL, raw[1:], pos, raw))
        elif group == "OP":
            tokens.append(Token(TokenKind.OP, raw, pos, raw))
        else:
            tokens.append(Token(_PUNCT[raw], raw, pos, raw))
        pos = match.end()

    tokens.append(Token(TokenKind.EOF, "", end))
    return tokens
