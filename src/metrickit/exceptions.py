"""Exception hierarchy for metrickit."""

from __future__ import annotations


class MetricKitError(Exception):
    """Base class for all metrickit errors."""


class ExprSyntaxError(MetricKitError):
    """Malformed formula source.

    Attributes:
        position: Offset of the offending token in the source (-1 if unknown).
        token: Text of the offending token ("" at end of input).
    """

    def __init__(self, message: str, position: int = -1, token: str = "") -> None:
        self.message = message
        self.position = position
        self.token = token
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.position < 0:
            return self.message
        where = f"'{self.token}'" if self.token else "end of input"
        return f"{self.message} at position {self.position} ({where})"


class EvaluationError(MetricKitError):
    """Base class for failures while evaluating a formula."""


class UndefinedIdentifierError(EvaluationError, KeyError):
    """An identifier on the executed path has no bound value."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Identifier '{self.name}' has no value"


class DivisionByZeroError(EvaluationError, ZeroDivisionError):
    """Division or modulo by a zero denominator outside d_ratio."""


class ReferenceCycleError(EvaluationError):
    """A metric reference refers back to itself."""

    def __init__(self, chain: list[str]) -> None:
        self.chain = list(chain)
        super().__init__("Metric reference cycle: " + " -> ".join(self.chain))


class DuplicateKeyError(MetricKitError, KeyError):
    """Insert of a key that is already present in an ids set."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Key '{self.key}' already present"


class UnknownMetricError(MetricKitError, KeyError):
    """Lookup of a metric name that the table does not define."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown metric '{self.name}'"


class ParseError(MetricKitError):
    """Malformed metric definition file."""
