#!/usr/bin/env python3
"""Test runner script for QueryBridge.

This script provides a convenient interface for running the test suite
with coverage and marker selection.
"""

import argparse
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).parent.parent


def run_command(cmd: List[str], *, cwd: Optional[Path] = None) -> int:
    """Run command and return exit code.

    Args:
        cmd: Command to run as list of strings
        cwd: Working directory for command

    Returns:
        Exit code from command
    """
    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, cwd=cwd)
    return result.returncode


def run_tests(
    test_type: str = "all",
    *,
    coverage: bool = False,
    verbose: bool = False,
    fail_fast: bool = False,
    html_report: bool = False,
    keyword: Optional[str] = None,
) -> int:
    """Run tests with specified configuration.

    Args:
        test_type: Marker to select (all, unit, database)
        coverage: Enable coverage reporting
        verbose: Enable verbose output
        fail_fast: Stop on first failure
        html_report: Generate HTML coverage report
        keyword: Optional ``-k`` expression

    Returns:
        Exit code from pytest
    """
    cmd = [sys.executable, "-m", "pytest"]

    if test_type != "all":
        cmd.extend(["-m", test_type])

    if coverage:
        cmd.extend([
            "--cov=src/querybridge",
            "--cov-report=term-missing:skip-covered",
            "--cov-report=xml:coverage.xml",
            "--cov-fail-under=85",
        ])

        if html_report:
            cmd.append("--cov-report=html:htmlcov")

    if keyword:
        cmd.extend(["-k", keyword])

    if verbose:
        cmd.append("-v")

    if fail_fast:
        cmd.append("-x")

    cmd.append("--durations=10")

    return run_command(cmd, cwd=PROJECT_ROOT)


def main():
    """Main test runner function."""
    parser = argparse.ArgumentParser(
        description="QueryBridge test runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Run all tests
  %(prog)s --type database          # Run adapter, registry and service tests
  %(prog)s --coverage --html        # Run with coverage and HTML report
  %(prog)s -k timeout -v            # Run tests matching "timeout"
        """
    )

    parser.add_argument(
        "--type", "-t",
        choices=["all", "unit", "database"],
        default="all",
        help="Type of tests to run (default: all)"
    )

    parser.add_argument(
        "--coverage", "-c",
        action="store_true",
        help="Enable coverage reporting"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--fail-fast", "-x",
        action="store_true",
        help="Stop on first failure"
    )

    parser.add_argument(
        "--html",
        action="store_true",
        help="Generate HTML coverage report"
    )

    parser.add_argument(
        "-k",
        dest="keyword",
        help="Only run tests matching the given expression"
    )

    args = parser.parse_args()

    return run_tests(
        test_type=args.type,
        coverage=args.coverage,
        verbose=args.verbose,
        fail_fast=args.fail_fast,
        html_report=args.html,
        keyword=args.keyword,
    )


if __name__ == "__main__":
    sys.exit(main())
