"""Command-line entry point for the page-size check.

Usage::

    py-pagecheck --smaps smaps-copy-1234-0.txt --trace ps-1234.log [--debug]

The helper functions (``build_parser``, ``format_verdict``,
``format_log``) are pure and testable.  ``run()`` does the I/O and
returns an exit code; ``main()`` is the console-script wrapper.

Exit codes:
    - 0 — every traced page size matches the snapshot.
    - 1 — the check failed (mismatch, unmapped address, bad input).
    - 2 — the check could not be configured or an input is unreadable.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from py_pagecheck.config import ConfigError, resolve_config
from py_pagecheck.errors import PageCheckError
from py_pagecheck.logging import Logger, LogLevel
from py_pagecheck.verify import check_files

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from py_pagecheck.verify import Verdict

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="py-pagecheck",
        description="Check logged VM page sizes against a /proc/<pid>/smaps snapshot.",
    )
    parser.add_argument("--smaps", help="smaps snapshot to check against")
    parser.add_argument("--trace", help="page-size trace log written by the VM")
    parser.add_argument("--config", type=Path, help="JSON config file")
    parser.add_argument(
        "--debug",
        "-debug",
        action="store_true",
        default=None,
        help="print every line read and every comparison made",
    )
    parser.add_argument(
        "--keep-going",
        dest="fail_fast",
        action="store_false",
        default=None,
        help="report every failed assertion instead of stopping at the first",
    )
    return parser


def format_verdict(verdict: Verdict) -> str:
    """Summarise a verdict as display text."""
    if verdict.passed:
        return f"PASS: {verdict.checked} page sizes checked ({verdict.tolerated} THP tolerated)"
    lines = [f"FAIL: {len(verdict.violations)} of {verdict.checked} page sizes failed"]
    lines.extend(f"  {violation}" for violation in verdict.violations)
    return "\n".join(lines)


def format_log(logger: Logger, *, min_level: LogLevel = LogLevel.DEBUG) -> str:
    """Render recorded log entries, one per line."""
    return "\n".join(str(entry) for entry in logger.filter(min_level=min_level))


def run(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """Run one check and return the process exit code.

    Args:
        argv: Command-line arguments (defaults to ``sys.argv[1:]``).
        environ: Environment to read settings from (defaults to
            ``os.environ``).

    """
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(
            config_file=args.config,
            environ=os.environ if environ is None else environ,
            smaps_file=args.smaps,
            trace_file=args.trace,
            debug=args.debug,
            fail_fast=args.fail_fast,
        )
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)  # noqa: T201
        return EXIT_USAGE

    logger = Logger(min_level=LogLevel.DEBUG if config.debug else LogLevel.WARNING)
    try:
        verdict = check_files(config, logger=logger)
    except PageCheckError as e:
        _print_log(logger)
        print(f"FAIL: {e}")  # noqa: T201
        return EXIT_FAIL
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)  # noqa: T201
        return EXIT_USAGE

    _print_log(logger)
    print(format_verdict(verdict))  # noqa: T201
    return EXIT_PASS if verdict.passed else EXIT_FAIL


def _print_log(logger: Logger) -> None:
    """Print whatever the logger recorded, if anything."""
    text = format_log(logger)
    if text:
        print(text)  # noqa: T201


def main() -> None:
    """Console-script entry point."""
    sys.exit(run())
