"""Host system queries behind ``#`` literals.

Formulas may use ``#smt_on`` (1 when simultaneous multithreading is active),
``#num_cpus`` and ``#num_cpus_online``. These are answered by a system
collaborator held by the evaluation context:

- :class:`HostSystem` reads the running machine's sysfs.
- :class:`FixedSystem` returns fixed answers (tests, what-if analysis).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

HOST_LITERALS: frozenset[str] = frozenset({"smt_on", "num_cpus", "num_cpus_online"})

SYSFS_CPU = Path("/sys/devices/system/cpu")


class SystemInfo(Protocol):
    """Collaborator answering host queries."""

    def smt_on(self) -> bool: ...

    def num_cpus(self) -> int: ...

    def num_cpus_online(self) -> int: ...


def _parse_cpu_list(text: str) -> int:
    """Count CPUs in a sysfs list such as ``0-3,8``."""
    count = 0
    for part in text.strip().split(","):
        if not part:
            continue
        if "-" in part:
            lo, hi = part.split("-", 1)
            count += int(hi) - int(lo) + 1
        else:
            count += 1
    return count


@dataclass
class HostSystem:
    """Answers host queries from sysfs.

    SMT state is read from ``smt/active``; older kernels without it are
    checked for any CPU with more than one thread sibling. Answers are
    cached per instance.

    Attributes:
        sysfs_cpu: Root of the CPU sysfs tree.
    """

    sysfs_cpu: Path = SYSFS_CPU
    _smt: bool | None = field(default=None, init=False, repr=False)

    def smt_on(self) -> bool:
        if self._smt is None:
            self._smt = self._read_smt()
        return self._smt

    def _read_smt(self) -> bool:
        active = self.sysfs_cpu / "smt" / "active"
        try:
            return int(active.read_text().strip()) != 0
        except (OSError, ValueError):
            logger.debug("cannot read %s, checking thread siblings", active)

        for siblings in sorted(self.sysfs_cpu.glob("cpu[0-9]*/topology/thread_siblings_list")):
            try:
                if _parse_cpu_list(siblings.read_text()) > 1:
                    return True
            except (OSError, ValueError):
                continue
        return False

    def num_cpus(self) -> int:
        return os.cpu_count() or 1

    def num_cpus_online(self) -> int:
        online = self.sysfs_cpu / "online"
        try:
            return _parse_cpu_list(online.read_text())
        except (OSError, ValueError):
            return self.num_cpus()


@dataclass(frozen=True, slots=True)
class FixedSystem:
    """Host answers fixed at construction.

    Attributes:
        smt: Whether SMT is reported as active.
        cpus: CPU count reported for both ``#num_cpus`` and ``#num_cpus_online``.
    """

    smt: bool = False
    cpus: int = 1

    def smt_on(self) -> bool:
        return self.smt

    def num_cpus(self) -> int:
        return self.cpus

    def num_cpus_online(self) -> int:
        return self.cpus


def literal_value(system: SystemInfo, name: str) -> float:
    """Value of the host literal ``#name``."""
    if name == "smt_on":
        return 1.0 if system.smt_on() else 0.0
    if name == "num_cpus":
        return float(system.num_cpus())
    if name == "num_cpus_online":
        return float(system.num_cpus_online())
    raise ValueError(f"Unknown literal: #{name}")
