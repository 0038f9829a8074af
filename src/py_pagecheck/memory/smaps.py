"""smaps parser — turn a memory-map snapshot into address ranges.

``/proc/<pid>/smaps`` is a sequence of records, one per mapping.  A
record begins with a header line and is followed by ``Key: value``
lines.  There is no terminator line: a record ends where the next
header begins, or at end of file::

    700000000-73ea00000 rw-p 00000000 00:00 0          ← header
    Size:            1026048 kB
    KernelPageSize:        4 kB                         ← page size
    MMUPageSize:           4 kB
    ...
    VmFlags: rd wr mr mw me ac sd hg                     ← flags

Only three kinds of line matter; everything else is ignored.

The parser is a two-state machine::

    Idle ──header──▶ Collecting ──header──▶ Collecting (previous flushed)
                          │
                          └──end of input──▶ Idle (last record flushed)

``step`` is a pure transition function: given a state and a line it
returns the next state plus the range completed by that line, if any.
``finish`` flushes whatever record is still open.  ``SmapsParser``
wraps the two for streaming use with a diagnostic log.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from py_pagecheck.errors import SmapsParseError
from py_pagecheck.logging import LogLevel
from py_pagecheck.memory.ranges import AddressRange, RangeIndex

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from py_pagecheck.logging import Logger

_SOURCE = "smaps"

# Address groups accept any alphanumerics; _parse_hex rejects non-hex.
_SEGMENT_START = re.compile(r"^([0-9A-Za-z]+)-([0-9A-Za-z]+) [-rwxsp]{4}(?:\s|$)")
_KERNEL_PAGE_SIZE = re.compile(r"^KernelPageSize:\s*(\d+) kB")
_VM_FLAGS = re.compile(r"^VmFlags:(.*)$")
_HEX = re.compile(r"[0-9A-Fa-f]+")

FLAG_EXPLICIT_HUGE = "ht"
FLAG_TRANSPARENT_HUGE = "hg"


@dataclass(frozen=True)
class Idle:
    """No record is open."""


@dataclass(frozen=True)
class Collecting:
    """A record is open and its fields are being gathered."""

    start: int
    end: int
    lineno: int
    page_size: int | None = None
    flags: tuple[str, ...] = ()


ParserState = Idle | Collecting

IDLE = Idle()


def _parse_hex(text: str, lineno: int) -> int:
    """Parse a smaps address, failing loudly on anything but 64-bit hex."""
    if _HEX.fullmatch(text) is None:
        msg = f"Invalid hex address {text!r}"
        raise SmapsParseError(msg, lineno=lineno)
    value = int(text, 16)
    if value >> 64:
        msg = f"Address {text!r} does not fit in 64 bits"
        raise SmapsParseError(msg, lineno=lineno)
    return value


def finish(state: ParserState) -> AddressRange | None:
    """Close the open record, if any, and return its range.

    Raises:
        SmapsParseError: If the record never reported a page size or
            describes an invalid range.

    """
    match state:
        case Collecting(page_size=None):
            msg = f"No KernelPageSize for mapping {state.start:x}-{state.end:x}"
            raise SmapsParseError(msg, lineno=state.lineno)
        case Collecting(page_size=int(page_size)):
            try:
                return AddressRange(
                    start=state.start,
                    end=state.end,
                    page_size=page_size,
                    transparent_huge=FLAG_TRANSPARENT_HUGE in state.flags,
                    explicit_huge=FLAG_EXPLICIT_HUGE in state.flags,
                )
            except SmapsParseError as e:
                raise SmapsParseError(str(e), lineno=state.lineno) from e
        case _:
            return None


def step(state: ParserState, line: str, lineno: int) -> tuple[ParserState, AddressRange | None]:
    """Feed one line to the state machine.

    Args:
        state: The current parser state.
        line: One line of smaps text (trailing newline allowed).
        lineno: 1-based line number, used in error messages.

    Returns:
        The next state and the range completed by this line (only a
        header line can complete one).

    Raises:
        SmapsParseError: If a header carries bad addresses, or the
            record it closes is incomplete.

    """
    line = line.rstrip("\n")

    header = _SEGMENT_START.match(line)
    if header is not None:
        start = _parse_hex(header.group(1), lineno)
        end = _parse_hex(header.group(2), lineno)
        completed = finish(state)
        return Collecting(start=start, end=end, lineno=lineno), completed

    if not isinstance(state, Collecting):
        return state, None

    page_size = _KERNEL_PAGE_SIZE.match(line)
    if page_size is not None:
        return replace(state, page_size=int(page_size.group(1))), None

    vm_flags = _VM_FLAGS.match(line)
    if vm_flags is not None:
        return replace(state, flags=tuple(vm_flags.group(1).split())), None

    return state, None


class SmapsParser:
    """Streaming smaps parser that records diagnostics.

    Usage::

        parser = SmapsParser(logger=logger)
        for line in lines:
            parser.feed(line)
        index = parser.finish()

    """

    def __init__(self, *, logger: Logger | None = None) -> None:
        """Create a parser in the idle state.

        Args:
            logger: Where to record each added range (and, at DEBUG,
                every line read).

        """
        self._logger = logger
        self._state: ParserState = IDLE
        self._ranges: list[AddressRange] = []
        self._lineno = 0

    @property
    def state(self) -> ParserState:
        """Return the current state of the record machine."""
        return self._state

    def feed(self, line: str) -> None:
        """Consume one line of smaps text."""
        self._lineno += 1
        if self._logger is not None and self._logger.enabled_for(LogLevel.DEBUG):
            self._logger.debug(line.rstrip("\n"), source=_SOURCE, lineno=self._lineno)
        self._state, completed = step(self._state, line, self._lineno)
        if completed is not None:
            self._add(completed)

    def finish(self) -> RangeIndex:
        """Flush the last record and return every range parsed.

        The parser is reset to idle, so a later ``finish`` returns
        the same ranges without duplicating the last one.
        """
        completed = finish(self._state)
        self._state = IDLE
        if completed is not None:
            self._add(completed)
        return RangeIndex(self._ranges)

    def _add(self, address_range: AddressRange) -> None:
        """Record a completed range."""
        self._ranges.append(address_range)
        if self._logger is not None:
            self._logger.debug(f"Added range: {address_range}", source=_SOURCE)


def parse_smaps(lines: Iterable[str], *, logger: Logger | None = None) -> RangeIndex:
    """Parse smaps text lines into a range index."""
    parser = SmapsParser(logger=logger)
    for line in lines:
        parser.feed(line)
    return parser.finish()


def load_smaps(path: Path, *, logger: Logger | None = None) -> RangeIndex:
    """Parse an smaps snapshot file into a range index.

    The file is closed once parsing ends, whether or not it succeeded.
    Undecodable bytes (mapped pathnames may hold any) are replaced.

    Raises:
        SmapsParseError: If the snapshot is malformed.
        OSError: If the file cannot be read.

    """
    if logger is not None:
        logger.log(LogLevel.INFO, f"Parsing: {path.name}...", source=_SOURCE)
    with path.open(encoding="utf-8", errors="replace") as f:
        return parse_smaps(f, logger=logger)
