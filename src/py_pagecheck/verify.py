"""Reconciler — check every traced page size against the snapshot.

For each claim from the trace log:

1. Find the smaps range that owns the address.  No owner is a failure:
   the snapshot and the log disagree about what is mapped.
2. Compare the traced page size with ``KernelPageSize``.
   - Equal → fine.
   - Traced size larger **and** the range is THP-advised (``hg``) →
     fine.  Transparent huge pages are promoted behind smaps' back, so
     ``KernelPageSize`` under-reports them.
   - Anything else → failure.  A traced size *smaller* than smaps is
     never tolerated.

By default the first failure is raised (fail-fast).  With
``fail_fast=False`` every failure is collected into the ``Verdict``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from py_pagecheck.errors import MissingRangeError, PageCheckError, PageSizeMismatchError
from py_pagecheck.logging import Logger, LogLevel
from py_pagecheck.memory.smaps import load_smaps
from py_pagecheck.trace.parser import load_trace

if TYPE_CHECKING:
    from collections.abc import Iterable

    from py_pagecheck.config import CheckConfig
    from py_pagecheck.memory.ranges import RangeIndex
    from py_pagecheck.trace.parser import TraceAssertion

_SOURCE = "verify"


class Outcome(StrEnum):
    """How a single assertion was judged."""

    EQUAL = "equal"
    TOLERATED = "tolerated"


@dataclass(frozen=True)
class Verdict:
    """Result of checking a whole trace log."""

    checked: int
    tolerated: int = 0
    violations: tuple[PageCheckError, ...] = ()

    @property
    def passed(self) -> bool:
        """Return True if no assertion failed."""
        return not self.violations


class Verifier:
    """Judge trace assertions against a range index."""

    def __init__(
        self,
        index: RangeIndex,
        *,
        logger: Logger | None = None,
        fail_fast: bool = True,
    ) -> None:
        """Create a verifier.

        Args:
            index: Ranges parsed from the smaps snapshot.
            logger: Where to record each comparison.
            fail_fast: Raise on the first failure instead of collecting.

        """
        self._index = index
        self._logger = logger
        self._fail_fast = fail_fast
        self._checked = 0
        self._tolerated = 0

    @property
    def checked(self) -> int:
        """Return how many assertions the last run has checked so far."""
        return self._checked

    @property
    def tolerated(self) -> int:
        """Return how many of those passed only by THP tolerance."""
        return self._tolerated

    def check(self, assertion: TraceAssertion) -> Outcome:
        """Check one assertion.

        Returns:
            ``Outcome.EQUAL`` or ``Outcome.TOLERATED``.

        Raises:
            MissingRangeError: If no range owns the address.
            PageSizeMismatchError: If the page sizes disagree outside
                the THP tolerance.

        """
        address_range = self._index.lookup(assertion.address)
        if address_range is None:
            self._trace(LogLevel.ERROR, f"Could not find range for: {assertion.line}", assertion)
            raise MissingRangeError(assertion.address)

        smaps_kb = address_range.page_size
        trace_kb = assertion.page_size_kb
        self._trace(LogLevel.DEBUG, f"From smaps: {address_range}", assertion)

        if smaps_kb == trace_kb:
            self._trace(LogLevel.DEBUG, f"Success: {smaps_kb} == {trace_kb}", assertion)
            return Outcome.EQUAL

        if trace_kb > smaps_kb and address_range.transparent_huge:
            self._trace(
                LogLevel.DEBUG,
                f"Success: {trace_kb} > {smaps_kb} and THP enabled",
                assertion,
            )
            return Outcome.TOLERATED

        self._trace(LogLevel.ERROR, f"Failure: {smaps_kb} != {trace_kb}", assertion)
        raise PageSizeMismatchError(
            address=assertion.address,
            smaps_kb=smaps_kb,
            trace_kb=trace_kb,
            address_range=address_range,
        )

    def run(self, assertions: Iterable[TraceAssertion]) -> Verdict:
        """Check every assertion and return the verdict.

        Counts are kept on the verifier, so they stay readable after a
        fail-fast raise.

        Raises:
            MissingRangeError: First unresolvable address, when fail-fast.
            PageSizeMismatchError: First mismatch, when fail-fast.
            TraceParseError: If the assertion stream hits a bad line.

        """
        self._checked = 0
        self._tolerated = 0
        violations: list[PageCheckError] = []
        for assertion in assertions:
            self._checked += 1
            try:
                if self.check(assertion) is Outcome.TOLERATED:
                    self._tolerated += 1
            except (MissingRangeError, PageSizeMismatchError) as e:
                if self._fail_fast:
                    raise
                violations.append(e)
        if self._logger is not None:
            self._logger.log(
                LogLevel.INFO,
                f"Checked {self._checked} assertions, {self._tolerated} tolerated, "
                f"{len(violations)} failed",
                source=_SOURCE,
            )
        return Verdict(
            checked=self._checked,
            tolerated=self._tolerated,
            violations=tuple(violations),
        )

    def _trace(self, level: LogLevel, message: str, assertion: TraceAssertion) -> None:
        """Record a comparison step against the assertion's trace line."""
        if self._logger is not None:
            self._logger.log(level, message, source=_SOURCE, lineno=assertion.lineno)


def check_files(
    config: CheckConfig,
    *,
    logger: Logger | None = None,
) -> Verdict:
    """Parse the snapshot, then check every claim in the trace log.

    Both files are closed when their pass ends, even on failure.

    Args:
        config: Paths and switches for the check.
        logger: Diagnostic log; a fresh one at the configured verbosity
            is used if omitted.

    Raises:
        PageCheckError: On a malformed snapshot or trace line, or on the
            first failed assertion when ``config.fail_fast`` is set.
        OSError: If either file cannot be read.

    """
    if logger is None:
        logger = Logger(min_level=LogLevel.DEBUG if config.debug else LogLevel.INFO)
    index = load_smaps(config.smaps_path, logger=logger)
    logger.log(LogLevel.INFO, f"Parsed {len(index)} ranges", source="smaps")

    verifier = Verifier(index, logger=logger, fail_fast=config.fail_fast)
    assertions = load_trace(config.trace_path, logger=logger)
    try:
        return verifier.run(assertions)
    finally:
        assertions.close()
