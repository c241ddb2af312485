"""Command-line interface for metrickit.

Usage:
    metrickit eval FORMULA -D NAME=VALUE    Evaluate a formula
    metrickit ids FORMULA                   List identifiers a formula needs
    metrickit events metrics.yaml METRIC    List events needed by a metric
    metrickit compute metrics.yaml -c CSV   Compute metrics from counter samples
    metrickit info metrics.yaml             Show metric table contents
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from argparse import Namespace

    from metrickit.metrics.table import MetricTable
    from metrickit.system import SystemInfo

logger = logging.getLogger("metrickit")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="metrickit",
        description="Evaluate and analyse performance-metric formulas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  metrickit eval "FOO + BAR" -D FOO=1 -D BAR=2
  metrickit ids "EVENT1 if #smt_on else EVENT2" --smt on
  metrickit ids "EVENT1\\,param\\=?@" --runtime 3
  metrickit events metrics.yaml IPC
  metrickit compute metrics.yaml -c counts.csv -m IPC -o ipc.csv
  metrickit info metrics.json
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # =========================================================================
    # eval command
    # =========================================================================
    eval_parser = subparsers.add_parser(
        "eval",
        help="Evaluate a formula",
        description="Evaluate a formula with identifier values given on the command line.",
    )
    eval_parser.add_argument("formula", help="Formula source")
    eval_parser.add_argument(
        "-D", "--define",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Bind an identifier (repeatable)",
    )
    _add_host_args(eval_parser)

    # =========================================================================
    # ids command
    # =========================================================================
    ids_parser = subparsers.add_parser(
        "ids",
        help="List identifiers a formula needs",
        description="Find the identifiers an evaluation of the formula would need.",
    )
    ids_parser.add_argument("formula", help="Formula source")
    ids_parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="NAME",
        help="Identifier to leave out (repeatable)",
    )
    _add_host_args(ids_parser)

    # =========================================================================
    # events command
    # =========================================================================
    events_parser = subparsers.add_parser(
        "events",
        help="List events needed by a metric",
        description="Resolve a metric, including referenced metrics, to its events.",
    )
    events_parser.add_argument("metrics", help="Metric file (.yaml, .json)")
    events_parser.add_argument("metric", help="Metric name")
    _add_host_args(events_parser)

    # =========================================================================
    # compute command
    # =========================================================================
    compute_parser = subparsers.add_parser(
        "compute",
        help="Compute metrics from counter samples",
        description="Compute metrics for every row of a CSV of event counts.",
    )
    compute_parser.add_argument("metrics", help="Metric file (.yaml, .json)")
    compute_parser.add_argument(
        "-c", "--counts",
        required=True,
        help="CSV file with one column per event",
    )
    compute_parser.add_argument(
        "-m", "--metric",
        action="append",
        default=None,
        help="Metric to compute (repeatable, default: all)",
    )
    compute_parser.add_argument(
        "-o", "--output",
        help="Write results to CSV instead of printing",
    )
    _add_host_args(compute_parser)

    # =========================================================================
    # info command
    # =========================================================================
    info_parser = subparsers.add_parser(
        "info",
        help="Show metric table contents",
        description="Display metrics and their groups.",
    )
    info_parser.add_argument("metrics", help="Metric file (.yaml, .json)")

    return parser


def _add_host_args(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--runtime",
        type=int,
        default=0,
        help="Value substituted for '?' in literal identifiers (default: 0, off)",
    )
    subparser.add_argument(
        "--smt",
        choices=["auto", "on", "off"],
        default="auto",
        help="SMT state for #smt_on (default: read from the host)",
    )


def _get_version() -> str:
    """Get package version."""
    try:
        from metrickit._version import __version__

        return __version__
    except ImportError:
        return "unknown"


def _configure_logging(verbosity: int) -> None:
    """Attach a stderr handler to the ``metrickit`` logger.

    0 -> WARNING, 1 -> INFO, 2+ -> DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(fmt="%(levelname)s %(name)s: %(message)s")
    )
    logger.setLevel(level)
    logger.handlers = [handler]


def _system(args: Namespace) -> SystemInfo:
    """Host collaborator selected by --smt."""
    from metrickit.system import FixedSystem, HostSystem

    host = HostSystem()
    if args.smt == "auto":
        return host
    return FixedSystem(smt=args.smt == "on", cpus=host.num_cpus())


def _parse_defines(specs: list[str]) -> dict[str, float]:
    """Parse repeatable -D specs into name -> value."""
    values: dict[str, float] = {}
    for raw in specs:
        if "=" not in raw:
            raise ValueError(f"Invalid -D spec '{raw}'. Use NAME=VALUE")
        name, rhs = raw.rsplit("=", 1)
        name = name.strip()
        rhs = rhs.strip()
        if not name or not rhs:
            raise ValueError(f"Invalid -D spec '{raw}'. Empty name or value")
        if name in values:
            raise ValueError(f"Duplicate -D identifier '{name}'")
        values[name] = float(rhs)
    return values


def _load_table(path: str) -> MetricTable:
    from metrickit.io import load_metrics

    logger.info("loading metrics from %s", path)
    return load_metrics(path)


def cmd_eval(args: Namespace) -> int:
    """Eval command."""
    from metrickit.exceptions import MetricKitError
    from metrickit.expr import ExprContext, expr_parse

    try:
        values = _parse_defines(args.define)
        ctx = ExprContext(runtime=args.runtime, system=_system(args))
        ctx.add_id_vals(values)
        result = expr_parse(args.formula, ctx)
    except (MetricKitError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(repr(result))
    return 0


def cmd_ids(args: Namespace) -> int:
    """Ids command."""
    from metrickit.exceptions import MetricKitError
    from metrickit.expr import ExprContext, expr_find_ids

    try:
        ctx = ExprContext(runtime=args.runtime, system=_system(args))
        ids = expr_find_ids(args.formula, args.exclude, ctx, args.runtime)
    except (MetricKitError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for name in sorted(ids):
        print(name)
    return 0


def cmd_events(args: Namespace) -> int:
    """Events command."""
    from metrickit.exceptions import MetricKitError
    from metrickit.metrics import metric_events

    try:
        table = _load_table(args.metrics)
        events = metric_events(table, args.metric, args.runtime, _system(args))
    except (MetricKitError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for name in sorted(events):
        print(name)
    return 0


def cmd_compute(args: Namespace) -> int:
    """Compute command."""
    from metrickit.exceptions import MetricKitError
    from metrickit.io import load_counts
    from metrickit.metrics import compute_metrics_frame

    try:
        table = _load_table(args.metrics)
        counts = load_counts(args.counts)
        result = compute_metrics_frame(
            table, counts, names=args.metric, runtime=args.runtime, system=_system(args)
        )
    except (MetricKitError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    failed = [name for name in result.columns if result[name].isna().all()]
    for name in failed:
        logger.warning("metric %s could not be computed for any sample", name)

    if args.output:
        result.to_csv(args.output)
        print(f"Wrote {len(result)} rows to {args.output}")
    else:
        print(result.to_string())
    return 0


def cmd_info(args: Namespace) -> int:
    """Info command."""
    from metrickit.exceptions import MetricKitError

    try:
        table = _load_table(args.metrics)
    except (MetricKitError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("=" * 50)
    print(f"METRICS: {args.metrics} ({len(table)})")
    print("=" * 50)
    print()

    for metric in table:
        unit = f" [{metric.scale_unit}]" if metric.scale_unit else ""
        print(f"  {metric.name}{unit}")
        print(f"      {metric.expr}")
        if metric.description:
            print(f"      {metric.description}")
    print()

    groups = table.groups()
    if groups:
        print("Groups:")
        print("-" * 30)
        for group, names in sorted(groups.items()):
            print(f"  {group:<20} {', '.join(names)}")

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "eval": cmd_eval,
        "ids": cmd_ids,
        "events": cmd_events,
        "compute": cmd_compute,
        "info": cmd_info,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
