"""Tests for metric tables, event resolution and computation."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from metrickit import load_metrics
from metrickit.exceptions import (
    DuplicateKeyError,
    ReferenceCycleError,
    UndefinedIdentifierError,
    UnknownMetricError,
)
from metrickit.metrics import (
    Metric,
    MetricTable,
    compute_metric,
    compute_metrics,
    compute_metrics_frame,
    metric_events,
    parse_scale_unit,
)
from metrickit.system import FixedSystem


@pytest.fixture
def table(metrics_dir) -> MetricTable:
    return load_metrics(metrics_dir / "skylake.yaml")


COUNTS = {
    "inst_retired.any": 2000.0,
    "cpu_clk_unhalted.thread": 1000.0,
    "cpu_clk_unhalted.thread_any": 1600.0,
    "idq_uops_not_delivered.core": 800.0,
}


# =========================================================================
# Metric definitions
# =========================================================================


class TestMetric:
    @pytest.mark.parametrize(
        "scale_unit,expected",
        [("100%", (100.0, "%")), ("1GHz", (1.0, "GHz")), ("", (1.0, "")),
         ("1e-6MB/s", (1e-6, "MB/s")), ("%", (1.0, "%"))],
    )
    def test_parse_scale_unit(self, scale_unit, expected):
        assert parse_scale_unit(scale_unit) == expected

    def test_from_dict_perf_spelling(self):
        metric = Metric.from_dict(
            {
                "MetricName": "IPC",
                "MetricExpr": "a / b",
                "MetricGroup": "Summary;TopdownL1",
                "BriefDescription": "Instructions per cycle",
                "ScaleUnit": "1per_cycle",
            }
        )
        assert metric.name == "IPC"
        assert metric.groups == ("Summary", "TopdownL1")
        assert metric.unit == "per_cycle"

    def test_rejects_empty_expression(self):
        with pytest.raises(ValueError, match="empty expression"):
            Metric("X", "  ")

    def test_to_dict_roundtrip(self):
        metric = Metric("M", "a + b", groups=("G",), description="d", scale_unit="100%")
        assert Metric.from_dict(metric.to_dict()) == metric


class TestMetricTable:
    def test_loaded_table(self, table):
        assert table.names == ["IPC", "CPI", "SMT_Cycles", "Frontend_Bound"]
        assert "IPC" in table
        assert len(table) == 4

    def test_groups(self, table):
        groups = table.groups()
        assert groups["Summary"] == ["IPC", "CPI"]
        assert groups["TopdownL1"] == ["IPC", "Frontend_Bound"]
        assert [m.name for m in table.in_group("Frontend")] == ["Frontend_Bound"]

    def test_unknown_metric(self, table):
        with pytest.raises(UnknownMetricError):
            table.get("Nope")

    def test_duplicate_metric(self):
        table = MetricTable.from_metrics([Metric("A", "x")])
        with pytest.raises(DuplicateKeyError):
            table.add(Metric("A", "y"))


# =========================================================================
# Event resolution
# =========================================================================


class TestMetricEvents:
    def test_plain_metric(self, table):
        events = metric_events(table, "IPC", system=FixedSystem())
        assert set(events) == {"inst_retired.any", "cpu_clk_unhalted.thread"}

    def test_references_are_expanded(self, table):
        events = metric_events(table, "CPI", system=FixedSystem())
        assert set(events) == {"inst_retired.any", "cpu_clk_unhalted.thread"}

    @pytest.mark.parametrize(
        "smt,cycles_event",
        [(True, "cpu_clk_unhalted.thread_any"), (False, "cpu_clk_unhalted.thread")],
    )
    def test_smt_dependent_events(self, table, smt, cycles_event):
        events = metric_events(table, "Frontend_Bound", system=FixedSystem(smt=smt))
        assert set(events) == {"idq_uops_not_delivered.core", cycles_event}

    def test_cycle(self, metrics_dir):
        table = load_metrics(metrics_dir / "cycle.yaml")
        with pytest.raises(ReferenceCycleError):
            metric_events(table, "A", system=FixedSystem())

    def test_self_reference_excluded(self):
        table = MetricTable.from_metrics([Metric("M", "M + x")])
        assert set(metric_events(table, "M", system=FixedSystem())) == {"x"}


# =========================================================================
# Computation
# =========================================================================


class TestCompute:
    def test_compute_metric(self, table):
        assert compute_metric(table, "IPC", COUNTS, system=FixedSystem()) == pytest.approx(2.0)

    def test_compute_reference(self, table):
        assert compute_metric(table, "CPI", COUNTS, system=FixedSystem()) == pytest.approx(0.5)

    @pytest.mark.parametrize("smt,expected", [(True, 25.0), (False, 20.0)])
    def test_scaled_smt_metric(self, table, smt, expected):
        value = compute_metric(table, "Frontend_Bound", COUNTS, system=FixedSystem(smt=smt))
        assert value == pytest.approx(expected)

    def test_missing_count(self, table):
        with pytest.raises(UndefinedIdentifierError):
            compute_metric(table, "IPC", {"inst_retired.any": 1.0}, system=FixedSystem())

    def test_compute_metrics_marks_failures_nan(self, table):
        results = compute_metrics(
            table, {"inst_retired.any": 1.0}, ["IPC", "CPI"], system=FixedSystem()
        )
        assert math.isnan(results["IPC"])
        assert math.isnan(results["CPI"])

    def test_frame(self, table, fixtures_dir):
        counts = pd.read_csv(fixtures_dir / "counts.csv").set_index("interval")
        result = compute_metrics_frame(
            table, counts, names=["IPC", "Frontend_Bound"], system=FixedSystem(smt=False)
        )
        assert list(result.columns) == ["IPC", "Frontend_Bound"]
        assert list(result.index) == [1, 2, 3]
        np.testing.assert_allclose(result.loc[1:2, "IPC"].to_numpy(), [2.0, 2.0])
        assert math.isnan(result.loc[3, "IPC"])
        np.testing.assert_allclose(result["Frontend_Bound"].to_numpy(), [20.0, 0.0, 0.0])

    def test_frame_missing_cells(self):
        table = MetricTable.from_metrics([Metric("R", "a / b")])
        counts = pd.DataFrame({"a": [1.0, 2.0], "b": [2.0, np.nan]})
        result = compute_metrics_frame(table, counts, system=FixedSystem())
        assert result.loc[0, "R"] == pytest.approx(0.5)
        assert math.isnan(result.loc[1, "R"])

    def test_frame_unknown_metric(self, table):
        with pytest.raises(UnknownMetricError):
            compute_metrics_frame(table, pd.DataFrame({"a": [1.0]}), names=["Nope"])
