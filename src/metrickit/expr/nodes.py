"""AST nodes for metric formulas.

``Node`` is a closed union: the evaluator and the identifier collector
``match`` over exactly these classes, so a new node kind must be handled in
both.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class BinaryKind(Enum):
    """Binary operators, by source spelling."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    LT = "<"
    GT = ">"
    OR = "|"
    AND = "&"


class FuncKind(Enum):
    """Built-in two-argument functions."""

    MIN = "min"
    MAX = "max"
    D_RATIO = "d_ratio"


@dataclass(frozen=True, slots=True)
class Number:
    """A numeric literal."""

    value: float

    def __str__(self) -> str:
        return repr(self.value)


@dataclass(frozen=True, slots=True)
class Identifier:
    """Reference to a named quantity (event or metric)."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class HostLiteral:
    """A ``#name`` pseudo-identifier answered by the host system."""

    name: str

    def __str__(self) -> str:
        return f"#{self.name}"


@dataclass(frozen=True, slots=True)
class BinaryOp:
    kind: BinaryKind
    left: Node
    right: Node

    def __str__(self) -> str:
        return f"({self.left} {self.kind.value} {self.right})"


@dataclass(frozen=True, slots=True)
class Negate:
    operand: Node

    def __str__(self) -> str:
        return f"(-{self.operand})"


@dataclass(frozen=True, slots=True)
class Ternary:
    """``true_branch if condition else false_branch``."""

    condition: Node
    true_branch: Node
    false_branch: Node

    def __str__(self) -> str:
        return f"({self.true_branch} if {self.condition} else {self.false_branch})"


@dataclass(frozen=True, slots=True)
class FunctionCall:
    kind: FuncKind
    args: tuple[Node, ...]

    def __str__(self) -> str:
        args_str = ", ".join(str(arg) for arg in self.args)
        return f"{self.kind.value}({args_str})"


Node = Union[Number, Identifier, HostLiteral, BinaryOp, Negate, Ternary, FunctionCall]


def identifiers(node: Node) -> set[str]:
    """All identifier names appearing anywhere in ``node``.

    Unlike find-ids this ignores short-circuiting and host literals.
    """
    match node:
        case Identifier(name):
            return {name}
        case Number() | HostLiteral():
            return set()
        case BinaryOp(_, left, right):
            return identifiers(left) | identifiers(right)
        case Negate(operand):
            return identifiers(operand)
        case Ternary(condition, true_branch, false_branch):
            return identifiers(condition) | identifiers(true_branch) | identifiers(false_branch)
        case FunctionCall(_, args):
            result: set[str] = set()
            for arg in args:
                result |= identifiers(arg)
            return result
    raise TypeError(f"Unknown node type: {type(node).__name__}")
