"""Identifier sets.

An :class:`IdsSet` maps identifier names (event or metric names) to an
optional associated datum. Find-ids fills sets with ``None`` values; an
evaluation context stores :class:`~metrickit.expr.context.IdValue` or
:class:`~metrickit.expr.context.MetricRef` data in them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from metrickit.exceptions import DuplicateKeyError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class IdsSet:
    """Owned mapping from identifier name to an optional datum.

    Keys are unique. ``insert`` refuses duplicates; ``set`` replaces.
    After :meth:`free` the set can no longer be used.
    """

    __slots__ = ("_data", "_freed")

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._data: dict[str, Any] = {}
        self._freed = False
        for key in keys:
            self.insert(key)

    def _check(self) -> None:
        if self._freed:
            raise RuntimeError("IdsSet used after free()")

    def insert(self, key: str, value: Any = None) -> None:
        """Insert a new key. Raises DuplicateKeyError if present."""
        self._check()
        if key in self._data:
            raise DuplicateKeyError(key)
        self._data[key] = value

    def set(self, key: str, value: Any = None) -> None:
        """Insert or replace the datum for ``key``."""
        self._check()
        self._data[key] = value

    def find(self, key: str) -> Any:
        """Return the datum for ``key``. Raises KeyError if absent."""
        self._check()
        return self._data[key]

    def get(self, key: str, default: Any = None) -> Any:
        self._check()
        return self._data.get(key, default)

    def remove(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._check()
        self._data.pop(key, None)

    def size(self) -> int:
        self._check()
        return len(self._data)

    def keys(self) -> list[str]:
        self._check()
        return list(self._data)

    def is_subset_of(self, other: IdsSet) -> bool:
        """True if every key of this set is also a key of ``other``."""
        self._check()
        return all(key in other for key in self._data)

    def union(self, other: IdsSet) -> IdsSet:
        """Merge ``other`` into this set, consuming it.

        Keys already present keep their datum. ``other`` is left empty.
        """
        self._check()
        other._check()
        if other is self:
            return self
        for key, value in other._data.items():
            if key not in self._data:
                self._data[key] = value
        other._data.clear()
        return self

    def clear(self) -> None:
        """Remove all entries, keeping the container usable."""
        self._check()
        self._data.clear()

    def free(self) -> None:
        """Drop all entries and close the container."""
        self._data.clear()
        self._freed = True

    def __contains__(self, key: object) -> bool:
        self._check()
        return key in self._data

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[str]:
        self._check()
        return iter(list(self._data))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IdsSet):
            return set(self._data) == set(other._data)
        if isinstance(other, (set, frozenset)):
            return set(self._data) == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self._freed:
            return "IdsSet(<freed>)"
        return f"IdsSet({sorted(self._data)!r})"


def ids_union(ids1: IdsSet | None, ids2: IdsSet | None) -> IdsSet:
    """Union two sets, consuming both.

    Either operand may be ``None`` or empty. On a key collision the datum
    from ``ids1`` is kept.
    """
    if ids1 is None:
        return ids2 if ids2 is not None else IdsSet()
    if ids2 is None:
        return ids1
    return ids1.union(ids2)
