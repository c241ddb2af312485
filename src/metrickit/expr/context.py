"""Evaluation context for metric formulas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from metrickit.expr.ids import IdsSet
from metrickit.system import HostSystem

if TYPE_CHECKING:
    from collections.abc import Mapping

    from metrickit.system import SystemInfo


@dataclass(frozen=True, slots=True)
class IdValue:
    """A measured or computed value bound to an identifier."""

    value: float


@dataclass(frozen=True, slots=True)
class MetricRef:
    """An identifier defined by another formula.

    Evaluation parses and evaluates ``expr`` on first use and caches the
    result in the context as an :class:`IdValue`.
    """

    name: str
    expr: str


IdData = Union[IdValue, MetricRef, None]
"""Datum stored per identifier; ``None`` marks a pending (unresolved) id."""


@dataclass
class ExprContext:
    """Identifier bindings plus the parameters formulas are evaluated with.

    Attributes:
        ids: Identifier name -> :data:`IdData`.
        runtime: Literal-mode parameter substituted for ``?`` (0 disables).
        system: Collaborator answering ``#smt_on`` and other host literals.
    """

    ids: IdsSet = field(default_factory=IdsSet)
    runtime: int = 0
    system: SystemInfo = field(default_factory=HostSystem)

    def __post_init__(self) -> None:
        if self.runtime < 0:
            raise ValueError(f"runtime must be >= 0, got {self.runtime}")

    def add_id_val(self, name: str, value: float) -> None:
        """Bind ``name`` to a numeric value, replacing any previous datum."""
        self.ids.set(name, IdValue(float(value)))

    def add_id_vals(self, values: Mapping[str, float]) -> None:
        """Bind several names at once."""
        for name, value in values.items():
            self.add_id_val(name, value)

    def add_id(self, name: str) -> None:
        """Record ``name`` as needed but not yet known."""
        if not self.has_id(name):
            self.ids.insert(name)

    def add_ref(self, name: str, expr: str) -> None:
        """Bind ``name`` to the formula ``expr``."""
        self.ids.set(name, MetricRef(name, expr))

    def get_id(self, name: str) -> IdData:
        """Datum for ``name``, or None if absent or pending."""
        return self.ids.get(name)

    def has_id(self, name: str) -> bool:
        """True if ``name`` is bound, pending or a reference."""
        return name in self.ids

    def del_id(self, name: str) -> None:
        """Forget ``name``; a no-op if it is absent."""
        self.ids.remove(name)

    def clear(self) -> None:
        """Drop every binding; the context stays usable."""
        self.ids.clear()

    def free(self) -> None:
        """Release the ids set. The context must not be used afterwards."""
        self.ids.free()
