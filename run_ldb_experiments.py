#!/usr/bin/env python3
"""
Simple launcher script for the LDB experiments framework.

This script prints usage examples and forwards any arguments to the CLI in
`ldb_experiments.cli`.
"""

import sys


def main():
    """Main entry point - shows usage examples and launches CLI."""
    if len(sys.argv) > 1:
        from ldb_experiments import cli
        return cli.main(sys.argv[1:])

    print("=" * 70)
    print("LDB EXPERIMENTS FRAMEWORK")
    print("Local Discriminant Basis vs. raw signal classification")
    print("=" * 70)

    print("\nUSAGE EXAMPLES:")
    print("-" * 70)

    print("\n1. Run the comparison:")
    print("   python run_ldb_experiments.py run --signal cbf --repeats 10 --seed 1")

    print("\n2. Triangular waveforms with bar plots:")
    print("   python run_ldb_experiments.py run --signal tri --plots")

    print("\n3. Inspect results:")
    print("   python run_ldb_experiments.py show Accuracy")
    print("   python run_ldb_experiments.py list")

    print("\n" + "=" * 70)
    print("For more options, run: python -m ldb_experiments.cli --help")
    print("=" * 70)
    return 0


if __name__ == '__main__':
    sys.exit(main())
