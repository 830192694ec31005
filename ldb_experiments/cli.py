#!/usr/bin/env python3
"""Command-line interface for the LDB comparison workflow."""

import argparse
import logging
import os
import sys
import textwrap

import pandas as pd

from ldb_experiments.core.config import ClassDataConfig, ExperimentConfig, create_default_config
from ldb_experiments.core.logger import setup_logger
from ldb_experiments.core.visualization import ExperimentVisualizer
from ldb_experiments.experiments import ExperimentManager

RUN_OVERRIDES = ("repeats", "seed", "n_jobs")
DEFAULT_SIGNAL = "cbf"
DEFAULT_TRAIN_SIZE = 33
DEFAULT_TEST_SIZE = 333


def _apply_data_flags(config: ExperimentConfig, args: argparse.Namespace) -> None:
    """Override the stored data sets with `--signal`/`--train-size`/`--test-size`."""

    for key, size in (("train", args.train_size), ("test", args.test_size)):
        current = getattr(config, key)
        kind = args.signal if args.signal is not None else current.kind
        counts = [size] * 3 if size is not None else current.counts
        setattr(config, key, ClassDataConfig(kind, *counts))


def _build_config(args: argparse.Namespace) -> ExperimentConfig:
    """Load `--config` or build the default configuration, then apply flags."""

    if args.config:
        config = ExperimentConfig.load(args.config)
        if args.output_dir is not None:
            config.output_dir = args.output_dir
        for key in RUN_OVERRIDES:
            value = getattr(args, key)
            if value is not None:
                setattr(config, key, value)
        _apply_data_flags(config, args)
    else:
        overrides = {key: getattr(args, key) for key in RUN_OVERRIDES if getattr(args, key) is not None}
        config = create_default_config(
            signal=args.signal or DEFAULT_SIGNAL,
            train_size=DEFAULT_TRAIN_SIZE if args.train_size is None else args.train_size,
            test_size=DEFAULT_TEST_SIZE if args.test_size is None else args.test_size,
            output_dir=args.output_dir or "./results",
            **overrides,
        )

    if args.no_save_data:
        config.save_data = False
    if config.repeats < 0:
        raise ValueError(f"repeats must be non-negative, got {config.repeats}.")
    return config


def run_command(args: argparse.Namespace) -> int:
    """Run the repeated comparison and print the aggregated test scores."""

    try:
        config = _build_config(args)
        manager = ExperimentManager(config.output_dir)
        result = manager.run_comparison(config)
        if args.plots:
            plot_dir = os.path.join(config.output_dir, "plots")
            ExperimentVisualizer(result["aggregates"]).create_report(plot_dir)
    except Exception as exc:  # pragma: no cover - CLI level reporting
        print(f"\n✗ Experiment failed: {exc}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    print("\n✓ Experiment completed successfully.\n")
    print(f"  {'experiment id':20s}: {result['experiment_id']}")
    print(f"  {'configuration':20s}: {result['config_file']}")
    for name, table in result["aggregates"].items():
        print(f"\n=== {name} (mean over {config.repeats} trials) ===")
        with pd.option_context("display.max_columns", None, "display.width", 120):
            print(table.to_string(index=False))

    return 0


def list_command(args: argparse.Namespace) -> int:
    """Render the experiment log."""

    manager = ExperimentManager(args.output_dir)
    df = manager.list_experiments()
    if df.empty:
        print("No experiments recorded yet.")
        return 0

    with pd.option_context("display.max_columns", None, "display.width", 120):
        print(df.to_string(index=False))
    return 0


def show_command(args: argparse.Namespace) -> int:
    """Print a saved aggregate or complete table."""

    manager = ExperimentManager(args.output_dir)
    try:
        table = manager.load_table(args.measure, complete=args.complete)
    except FileNotFoundError as exc:
        print(str(exc))
        return 1

    preview = table.head(args.rows) if args.rows else table
    with pd.option_context("display.max_columns", None, "display.width", 120):
        print(preview.to_string(index=False))
    if args.rows and len(table) > args.rows:
        print(f"... ({len(table) - args.rows} more rows omitted)")
    return 0


def compare_command(args: argparse.Namespace) -> int:
    """Print pairwise tests, confidence intervals and best methods for a measure."""

    manager = ExperimentManager(args.output_dir)
    try:
        tables = manager.compare_methods(args.measure, split=args.split, confidence=args.confidence)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        print(f"✗ Comparison failed: {exc}")
        return 1

    titles = {
        "pairwise": "Paired t-tests",
        "confidence": f"{args.confidence:.0%} confidence intervals",
        "best": "Best method per classifier",
    }
    with pd.option_context("display.max_columns", None, "display.width", 160):
        for kind, table in tables.items():
            print(f"\n=== {titles[kind]} ({args.split}_{args.measure}) ===")
            print(table.to_string(index=False) if not table.empty else "  (not enough trials)")
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""

    parser = argparse.ArgumentParser(
        description="Compare raw-signal and LDB features across classifiers on synthetic signals.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(
            """\
Example usage:
  # Ten trials on cylinder-bell-funnel signals, results under ./results
  python -m ldb_experiments.cli run --signal cbf --repeats 10 --seed 1

  # Re-run a stored configuration
  python -m ldb_experiments.cli run --config ./results/config.json

  # Show the averaged accuracy table
  python -m ldb_experiments.cli show Accuracy

  # Paired t-tests and confidence intervals of the test accuracy
  python -m ldb_experiments.cli compare Accuracy
"""
        ),
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the repeated comparison and aggregate the results.")
    run_parser.add_argument("--config", help="Experiment configuration JSON (as written by a previous run).")
    run_parser.add_argument("--signal", choices=["cbf", "tri"], help="Synthetic signal family (default: cbf).")
    run_parser.add_argument("--repeats", type=int, help="Number of trials (default: 10).")
    run_parser.add_argument("--train-size", type=int, help="Training signals per class (default: 33).")
    run_parser.add_argument("--test-size", type=int, help="Test signals per class (default: 333).")
    run_parser.add_argument("--seed", type=int, help="Random seed for data generation and classifiers.")
    run_parser.add_argument("--n-jobs", type=int, help="Parallel workers per grid (default: 1).")
    run_parser.add_argument("--output-dir", help="Directory for results (default: ./results).")
    run_parser.add_argument("--no-save-data", action="store_true", help="Do not write per-trial data and results.")
    run_parser.add_argument("--plots", action="store_true", help="Save a bar plot per measure.")
    run_parser.add_argument("--verbose", action="store_true", help="Debug logging and full tracebacks on failure.")

    list_parser = subparsers.add_parser("list", help="Show the experiment log.")
    list_parser.add_argument("--output-dir", default="./results", help="Directory containing the experiment log.")

    show_parser = subparsers.add_parser("show", help="Print a saved table for a measure.")
    show_parser.add_argument("measure", help="Measure name, e.g. Accuracy.")
    show_parser.add_argument("--output-dir", default="./results", help="Directory containing the results.")
    show_parser.add_argument("--complete", action="store_true", help="Show the per-trial table instead.")
    show_parser.add_argument("--rows", type=int, default=0, help="Limit the number of rows shown.")

    compare_parser = subparsers.add_parser("compare", help="Compare methods statistically across trials.")
    compare_parser.add_argument("measure", help="Measure name, e.g. Accuracy.")
    compare_parser.add_argument("--output-dir", default="./results", help="Directory containing the results.")
    compare_parser.add_argument("--split", choices=["Train", "Test"], default="Test", help="Scores to compare.")
    compare_parser.add_argument("--confidence", type=float, default=0.95, help="Confidence level of the intervals.")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    setup_logger(level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO)

    if args.command == "run":
        return run_command(args)
    if args.command == "list":
        return list_command(args)
    if args.command == "show":
        return show_command(args)
    if args.command == "compare":
        return compare_command(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
