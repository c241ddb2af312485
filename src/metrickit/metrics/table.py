"""Metric definitions.

A metric names a formula over events (and possibly other metrics)::

    Metric("IPC", "inst_retired.any / cpu_clk_unhalted.thread", groups=("TopdownL1",))

Entries may also be given in the perf pmu-events JSON spelling
(``MetricName``, ``MetricExpr``, ``MetricGroup``, ``BriefDescription``,
``ScaleUnit``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from metrickit.exceptions import DuplicateKeyError, UnknownMetricError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

_SCALE_UNIT_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?)?\s*(.*?)\s*$")


def parse_scale_unit(scale_unit: str) -> tuple[float, str]:
    """Split a ScaleUnit string such as ``"100%"`` into ``(100.0, "%")``."""
    match = _SCALE_UNIT_RE.match(scale_unit)
    if match is None:
        raise ValueError(f"Invalid scale unit: {scale_unit!r}")
    scale, unit = match.groups()
    return (float(scale) if scale else 1.0), unit


def _split_groups(groups: Any) -> tuple[str, ...]:
    if groups is None:
        return ()
    if isinstance(groups, str):
        return tuple(g.strip() for g in re.split(r"[;,]", groups) if g.strip())
    return tuple(str(g).strip() for g in groups if str(g).strip())


@dataclass(frozen=True, slots=True)
class Metric:
    """A named metric formula.

    Attributes:
        name: Metric name, usable as an identifier in other formulas.
        expr: Formula source.
        groups: Metric groups the metric belongs to.
        description: Human-readable description.
        scale_unit: Scale and unit applied to the computed value, e.g. ``"100%"``.
    """

    name: str
    expr: str
    groups: tuple[str, ...] = ()
    description: str = ""
    scale_unit: str = ""

    def __post_init__(self) -> None:
        name = self.name.strip()
        expr = self.expr.strip()
        if not name:
            raise ValueError("Metric name cannot be empty")
        if not expr:
            raise ValueError(f"Metric '{name}' has an empty expression")
        parse_scale_unit(self.scale_unit)
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "expr", expr)
        object.__setattr__(self, "groups", _split_groups(self.groups))

    @property
    def scale(self) -> float:
        return parse_scale_unit(self.scale_unit)[0]

    @property
    def unit(self) -> str:
        return parse_scale_unit(self.scale_unit)[1]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "expr": self.expr}
        if self.groups:
            data["groups"] = list(self.groups)
        if self.description:
            data["description"] = self.description
        if self.scale_unit:
            data["scale_unit"] = self.scale_unit
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Metric:
        name = data.get("name", data.get("MetricName"))
        expr = data.get("expr", data.get("MetricExpr", data.get("formula")))
        if name is None:
            raise ValueError("Metric dict must include 'name'")
        if expr is None:
            raise ValueError(f"Metric '{name}' must include 'expr'")
        return cls(
            name=str(name),
            expr=str(expr),
            groups=_split_groups(data.get("groups", data.get("MetricGroup"))),
            description=str(
                data.get("description", data.get("BriefDescription", "")) or ""
            ),
            scale_unit=str(data.get("scale_unit", data.get("ScaleUnit", "")) or ""),
        )


@dataclass
class MetricTable:
    """Ordered collection of metrics keyed by name."""

    _metrics: dict[str, Metric] = field(default_factory=dict)

    @classmethod
    def from_metrics(cls, metrics: Iterable[Metric]) -> MetricTable:
        table = cls()
        for metric in metrics:
            table.add(metric)
        return table

    def add(self, metric: Metric) -> None:
        """Add a metric. Raises DuplicateKeyError if the name is taken."""
        if metric.name in self._metrics:
            raise DuplicateKeyError(metric.name)
        self._metrics[metric.name] = metric

    def get(self, name: str) -> Metric:
        try:
            return self._metrics[name]
        except KeyError:
            raise UnknownMetricError(name) from None

    @property
    def names(self) -> list[str]:
        return list(self._metrics)

    def groups(self) -> dict[str, list[str]]:
        """Mapping: group name -> metric names, in table order."""
        result: dict[str, list[str]] = {}
        for metric in self._metrics.values():
            for group in metric.groups:
                result.setdefault(group, []).append(metric.name)
        return result

    def in_group(self, group: str) -> list[Metric]:
        return [m for m in self._metrics.values() if group in m.groups]

    def __contains__(self, name: object) -> bool:
        return name in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)

    def __iter__(self) -> Iterator[Metric]:
        return iter(self._metrics.values())

    def to_list(self) -> list[dict[str, Any]]:
        return [metric.to_dict() for metric in self._metrics.values()]

    @classmethod
    def from_list(cls, entries: list[dict[str, Any]]) -> MetricTable:
        return cls.from_metrics(Metric.from_dict(entry) for entry in entries)
