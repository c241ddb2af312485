"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from metrickit.expr import ExprContext
from metrickit.system import FixedSystem

FIXTURES_DIR = Path(__file__).parent / "fixtures"
METRICS_DIR = FIXTURES_DIR / "metrics"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def metrics_dir() -> Path:
    """Return path to metric file fixtures."""
    return METRICS_DIR


@pytest.fixture
def ctx() -> ExprContext:
    """Context with FOO=1, BAR=2 on a host without SMT."""
    context = ExprContext(system=FixedSystem(smt=False, cpus=4))
    context.add_id_val("FOO", 1)
    context.add_id_val("BAR", 2)
    return context
