#!/usr/bin/env python3
"""
Test runner for VCF Explorer.

Runs the unit and integration suites, or a single module, through pytest.
"""

import os
import sys
import argparse
import subprocess
from pathlib import Path


def parse_args():
    """Parse command-line arguments for the test runner."""
    parser = argparse.ArgumentParser(description="VCF Explorer Test Runner")
    
    parser.add_argument("--unit", action="store_true", help="Run unit tests only")
    parser.add_argument("--integration", action="store_true", help="Run integration tests only")
    parser.add_argument("--all", action="store_true", help="Run all tests (default)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--specific", type=str, help="Run a specific test module or function")
    parser.add_argument("--skip-slow", action="store_true", help="Skip slow tests")
    parser.add_argument("--keyword", "-k", type=str, help="Only run tests matching this expression")
    
    args = parser.parse_args()
    
    if not (args.unit or args.integration or args.specific):
        args.all = True
    
    return args


def build_command(args):
    """Assemble the pytest command line for the selected options."""
    cmd = [sys.executable, "-m", "pytest"]
    
    if args.verbose:
        cmd.append("-v")
    
    if args.unit:
        cmd.append("tests/unit/")
    elif args.integration:
        cmd.append("tests/integration/")
    elif args.specific:
        cmd.append(args.specific)
    elif args.all:
        cmd.append("tests/")
    
    if args.skip_slow:
        cmd.extend(["-m", "not slow"])
    
    if args.keyword:
        cmd.extend(["-k", args.keyword])
    
    return cmd


def main():
    """Main entry point for the test runner."""
    args = parse_args()
    
    # Ensure we're in the project root directory
    os.chdir(Path(__file__).parent)
    
    if args.verbose:
        print("Available test modules:")
        for suite in ("unit", "integration"):
            print(f"{suite.capitalize()} tests:")
            for test in sorted(Path("tests", suite).glob("test_*.py")):
                print(f"  - {test.stem}")
        print("")
    
    cmd = build_command(args)
    print(f"Running: {' '.join(cmd)}")
    return subprocess.run(cmd).returncode


if __name__ == "__main__":
    sys.exit(main())
