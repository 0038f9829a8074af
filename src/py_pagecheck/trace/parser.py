"""Trace log parser — pull page-size claims out of the VM's log.

With ``-Xlog:pagesize`` the VM logs every reservation it makes, e.g.::

    [0.004s][info][pagesize] Heap:  min=8M max=8M base=0x00000000ff800000 size=8M page_size=4K

Any line carrying ``base=0x...`` and, later, ``page_size=...`` is a
claim that the memory at ``base`` uses that page size.  When a line
repeats a field, the last ``base`` with a ``page_size`` after it and
the last ``page_size`` are used.  Other lines (the log interleaves
plenty) are skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from py_pagecheck.trace.units import page_size_in_kb

if TYPE_CHECKING:
    from collections.abc import Generator, Iterable, Iterator
    from pathlib import Path

    from py_pagecheck.logging import Logger

_SOURCE = "trace"

_TRACE_LINE = re.compile(r".*base=(0x[0-9A-Fa-f]+).*page_size=(\S+)")


@dataclass(frozen=True)
class TraceAssertion:
    """One claim from the trace log: *address* uses *page_size_kb* pages."""

    address: int
    page_size_kb: int
    lineno: int = 0
    line: str = ""


def parse_trace(lines: Iterable[str], *, logger: Logger | None = None) -> Iterator[TraceAssertion]:
    """Yield an assertion for every matching trace line.

    Lazy: lines are read only as assertions are consumed.

    Raises:
        TraceParseError: If a matching line has a malformed page size.

    """
    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\n")
        found = _TRACE_LINE.search(line)
        if found is None:
            continue
        address = int(found.group(1), 16)
        if logger is not None:
            logger.debug(f"From logfile: {line}", source=_SOURCE, lineno=lineno)
        yield TraceAssertion(
            address=address,
            page_size_kb=page_size_in_kb(found.group(2), logger=logger, lineno=lineno),
            lineno=lineno,
            line=line,
        )


def load_trace(
    path: Path, *, logger: Logger | None = None
) -> Generator[TraceAssertion, None, None]:
    """Yield assertions from a trace log file.

    The file stays open until the generator is exhausted or closed.
    """
    with path.open(encoding="utf-8", errors="replace") as f:
        yield from parse_trace(f, logger=logger)
