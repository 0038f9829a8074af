"""Tests for the trace log parser.

Lines carrying ``base=0x...`` followed by ``page_size=...`` are page
size claims; every other line is skipped.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest

from py_pagecheck.errors import TraceParseError
from py_pagecheck.logging import Logger, LogLevel
from py_pagecheck.trace.parser import TraceAssertion, load_trace, parse_trace

HEAP_BASE = 0x700000000
CODE_BASE = 0x7F1C48000000
SMALL_PAGE_KB = 4
HUGE_PAGE_KB = 2048

TRACE_LOG = """\
[0.002s][info][pagesize] CodeHeap 'non-nmethods':  min=2496K max=5700K base=0x00007f1c48000000 size=5700K page_size=4K
[0.003s][info][gc,init] Version: 21+35 (release)
[0.004s][info][pagesize] Heap:  min=8M max=1002M base=0x0000000700000000 size=1002M page_size=2M
some unrelated line with base= but nothing else
"""
TRACE_ASSERTIONS = 2


class TestParseTrace:
    """Verify extraction of assertions from log lines."""

    def test_extracts_matching_lines(self) -> None:
        """Each matching line yields one assertion."""
        assertions = list(parse_trace(TRACE_LOG.splitlines()))
        assert len(assertions) == TRACE_ASSERTIONS

    def test_address_and_size(self) -> None:
        """Addresses are hex, sizes are converted to KB."""
        code, heap = parse_trace(TRACE_LOG.splitlines())
        assert (code.address, code.page_size_kb) == (CODE_BASE, SMALL_PAGE_KB)
        assert (heap.address, heap.page_size_kb) == (HEAP_BASE, HUGE_PAGE_KB)

    def test_keeps_line_numbers(self) -> None:
        """Assertions remember where they came from."""
        _code, heap = parse_trace(TRACE_LOG.splitlines())
        assert heap.lineno == 3  # noqa: PLR2004
        assert "Heap:" in heap.line

    def test_surrounding_text_allowed(self) -> None:
        """The two fields may sit anywhere in the line."""
        (a,) = parse_trace(["prefix base=0x700000000 middle page_size=2m suffix"])
        assert a == TraceAssertion(
            address=HEAP_BASE,
            page_size_kb=HUGE_PAGE_KB,
            lineno=1,
            line="prefix base=0x700000000 middle page_size=2m suffix",
        )

    def test_uppercase_hex(self) -> None:
        """Hex digits may be upper case."""
        (a,) = parse_trace(["base=0x7F1C48000000 page_size=4K"])
        assert a.address == CODE_BASE

    def test_repeated_fields_use_last(self) -> None:
        """When a line repeats base= or page_size=, the last of each is used."""
        (a,) = parse_trace(
            ["base=0x1000 page_size=4K base=0x700000000 size=2M page_size=2M"]
        )
        assert (a.address, a.page_size_kb) == (HEAP_BASE, HUGE_PAGE_KB)

    def test_last_base_needs_page_size_after_it(self) -> None:
        """A trailing base= with no page_size= after it is not used."""
        (a,) = parse_trace(["base=0x700000000 page_size=2M base=0x1000"])
        assert a.address == HEAP_BASE

    def test_page_size_before_base_skipped(self) -> None:
        """page_size must follow base on the line."""
        assert list(parse_trace(["page_size=4K base=0x700000000"])) == []

    def test_base_without_hex_prefix_skipped(self) -> None:
        """base= must carry a 0x-prefixed address."""
        assert list(parse_trace(["base=700000000 page_size=4K"])) == []

    def test_empty_input(self) -> None:
        """No lines means no assertions."""
        assert list(parse_trace([])) == []

    def test_is_lazy(self) -> None:
        """Lines are consumed only as assertions are pulled."""
        consumed: list[str] = []

        def tracking() -> Iterator[str]:
            for line in ("base=0x1000 page_size=4K", "base=0x2000 page_size=4K"):
                consumed.append(line)
                yield line

        stream = parse_trace(tracking())
        next(stream)
        assert len(consumed) == 1

    def test_malformed_size_raises(self) -> None:
        """A matching line with an unreadable size is fatal."""
        with pytest.raises(TraceParseError, match="line 2"):
            list(parse_trace(["noise", "base=0x1000 page_size=4KB"]))

    def test_debug_logging(self) -> None:
        """At DEBUG level every matching line is logged."""
        logger = Logger(min_level=LogLevel.DEBUG)
        list(parse_trace(TRACE_LOG.splitlines(), logger=logger))
        entries = logger.filter(source="trace")
        assert [e.lineno for e in entries] == [1, 3]
        assert entries[0].message.startswith("From logfile: ")


class TestLoadTrace:
    """Verify reading assertions from a file."""

    def test_load_file(self, tmp_path: Path) -> None:
        """A trace file parses like its lines."""
        path = tmp_path / "ps-1234.log"
        path.write_text(TRACE_LOG)
        assert len(list(load_trace(path))) == TRACE_ASSERTIONS

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing trace log raises OSError when iterated."""
        with pytest.raises(OSError, match="ps-0.log"):
            list(load_trace(tmp_path / "ps-0.log"))

    def test_non_utf8_bytes(self, tmp_path: Path) -> None:
        """Undecodable bytes elsewhere on a line do not stop parsing."""
        path = tmp_path / "ps-1234.log"
        path.write_bytes(b"[info] caf\xe9 base=0x700000000 page_size=2M\n")
        (a,) = load_trace(path)
        assert (a.address, a.page_size_kb) == (HEAP_BASE, HUGE_PAGE_KB)
