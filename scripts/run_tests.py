"""
Run the DocQuill suite and keep a copy of the output.

    python scripts/run_tests.py                  # whole suite
    python scripts/run_tests.py -k find_replace  # extra args go to pytest
    python scripts/run_tests.py --log run.log    # write somewhere else
"""

import sys
import argparse
import datetime
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import pytest

# Add project root to sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

TESTS_DIR = PROJECT_ROOT / 'tests'
DEFAULT_LOG = TESTS_DIR / 'latest_results.log'
RULE = "=" * 60


class Tee:
    """File-like object that mirrors writes to the console and the log."""

    def __init__(self, *streams):
        self.streams = streams

    def write(self, text):
        for stream in self.streams:
            stream.write(text)
        return len(text)

    def flush(self):
        for stream in self.streams:
            stream.flush()

    def isatty(self):
        return False


def run_tests(log_path: Path = DEFAULT_LOG, pytest_args=None) -> int:
    """Run pytest over tests/ and return its exit code."""
    args = ["-v", "-ra", str(TESTS_DIR), *(pytest_args or [])]
    print(f"Running DocQuill tests: pytest {' '.join(args)}")
    print(f"Log: {log_path}")

    started = datetime.datetime.now()
    with open(log_path, 'w', encoding='utf-8') as log:
        log.write(f"Test Run: {started}\n{RULE}\n\n")
        with redirect_stdout(Tee(sys.stdout, log)), redirect_stderr(Tee(sys.stderr, log)):
            exit_code = int(pytest.main(args))
        elapsed = (datetime.datetime.now() - started).total_seconds()
        log.write(f"\n{RULE}\nRun Completed in {elapsed:.1f}s. Exit Code: {exit_code}\n")
    return exit_code


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the DocQuill test suite")
    parser.add_argument('--log', type=Path, default=DEFAULT_LOG, help=f"Results file (default: {DEFAULT_LOG})")
    options, pytest_args = parser.parse_known_args(argv)
    return 0 if run_tests(options.log, pytest_args) == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
