"""Exceptions raised while checking page sizes.

Every failure of a check derives from ``PageCheckError`` so callers
can treat "the check did not pass" as one condition, while still
telling a corrupt snapshot apart from a genuine page-size defect.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from py_pagecheck.memory.ranges import AddressRange


class PageCheckError(Exception):
    """Raise when a page-size check cannot pass."""


class SmapsParseError(PageCheckError):
    """Raise when the memory-map snapshot is malformed."""

    def __init__(self, message: str, *, lineno: int | None = None) -> None:
        """Create the error, optionally tagged with the offending line."""
        if lineno is not None:
            message = f"line {lineno}: {message}"
        super().__init__(message)
        self.lineno = lineno


class TraceParseError(PageCheckError):
    """Raise when a trace line carries an unreadable page size."""

    def __init__(self, message: str, *, lineno: int | None = None) -> None:
        """Create the error, optionally tagged with the offending line."""
        if lineno is not None:
            message = f"line {lineno}: {message}"
        super().__init__(message)
        self.lineno = lineno


class MissingRangeError(PageCheckError):
    """Raise when a traced address lies in no mapped range."""

    def __init__(self, address: int) -> None:
        """Create the error for *address*."""
        super().__init__(f"No memory range found for address: {address:#x}")
        self.address = address


class PageSizeMismatchError(PageCheckError):
    """Raise when the traced page size disagrees with the snapshot."""

    def __init__(
        self,
        *,
        address: int,
        smaps_kb: int,
        trace_kb: int,
        address_range: AddressRange,
    ) -> None:
        """Create the error citing both page sizes (in KB)."""
        super().__init__(
            f"Page sizes mismatch for address {address:#x}: {smaps_kb} != {trace_kb}"
        )
        self.address = address
        self.smaps_kb = smaps_kb
        self.trace_kb = trace_kb
        self.address_range = address_range
