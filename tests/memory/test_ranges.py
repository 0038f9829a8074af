"""Tests for address ranges and the range index.

A range is a half-open span ``[start, end)`` from one smaps record,
with its page size and huge-page flags.  The index answers "which
range owns this address?" by scanning in insertion order.
"""

import pytest

from py_pagecheck.errors import SmapsParseError
from py_pagecheck.memory.ranges import MAX_ADDRESS, AddressRange, RangeIndex

HEAP_START = 0x700000000
HEAP_END = 0x73EA00000
SMALL_PAGE_KB = 4
HUGE_PAGE_KB = 2048


def _range(start: int, end: int, page_size: int = SMALL_PAGE_KB) -> AddressRange:
    """Build a plain range with no huge-page flags."""
    return AddressRange(start=start, end=end, page_size=page_size)


class TestAddressRange:
    """Verify the AddressRange value."""

    def test_fields(self) -> None:
        """A range should store bounds, page size, and both flags."""
        r = AddressRange(
            start=HEAP_START,
            end=HEAP_END,
            page_size=HUGE_PAGE_KB,
            transparent_huge=True,
            explicit_huge=False,
        )
        assert r.start == HEAP_START
        assert r.end == HEAP_END
        assert r.page_size == HUGE_PAGE_KB
        assert r.transparent_huge is True
        assert r.explicit_huge is False

    def test_flags_default_off(self) -> None:
        """Huge-page flags should default to False."""
        r = _range(HEAP_START, HEAP_END)
        assert r.transparent_huge is False
        assert r.explicit_huge is False

    def test_is_frozen(self) -> None:
        """Ranges should be immutable once recorded."""
        r = _range(HEAP_START, HEAP_END)
        with pytest.raises(AttributeError):
            r.page_size = HUGE_PAGE_KB  # type: ignore[misc]

    def test_includes_start(self) -> None:
        """The start address belongs to the range."""
        assert _range(HEAP_START, HEAP_END).includes(HEAP_START)

    def test_excludes_end(self) -> None:
        """The end address does not belong to the range."""
        assert not _range(HEAP_START, HEAP_END).includes(HEAP_END)

    def test_includes_last_address(self) -> None:
        """The address just before end belongs to the range."""
        assert _range(HEAP_START, HEAP_END).includes(HEAP_END - 1)

    def test_excludes_below_start(self) -> None:
        """Addresses below start are outside."""
        assert not _range(HEAP_START, HEAP_END).includes(HEAP_START - 1)

    def test_top_of_address_space(self) -> None:
        """Ranges near 2**64 should compare without overflow."""
        r = _range(0xFFFFFFFFFF600000, 0xFFFFFFFFFF601000)
        assert r.includes(0xFFFFFFFFFF600FFF)
        assert not r.includes(0xFFFFFFFFFF601000)

    def test_end_may_be_max_address(self) -> None:
        """The largest 64-bit value is a valid end."""
        r = _range(MAX_ADDRESS - 0xFFF, MAX_ADDRESS)
        assert r.includes(MAX_ADDRESS - 1)

    def test_empty_range_rejected(self) -> None:
        """start == end is not a valid mapping."""
        with pytest.raises(SmapsParseError, match="Empty or inverted"):
            _range(HEAP_START, HEAP_START)

    def test_inverted_range_rejected(self) -> None:
        """start > end is not a valid mapping."""
        with pytest.raises(SmapsParseError):
            _range(HEAP_END, HEAP_START)

    def test_zero_page_size_rejected(self) -> None:
        """Page size must be positive."""
        with pytest.raises(SmapsParseError, match="page size"):
            _range(HEAP_START, HEAP_END, page_size=0)

    def test_address_beyond_64_bits_rejected(self) -> None:
        """Addresses must fit in 64 bits."""
        with pytest.raises(SmapsParseError, match="64-bit"):
            _range(HEAP_START, MAX_ADDRESS + 1)

    def test_str(self) -> None:
        """The text form should show hex bounds, size, and both flags."""
        r = AddressRange(
            start=HEAP_START,
            end=HEAP_END,
            page_size=HUGE_PAGE_KB,
            explicit_huge=True,
        )
        assert str(r) == (
            "[700000000, 73ea00000) pageSize=2048KB isTHP=False isHUGETLB=True"
        )


class TestRangeIndex:
    """Verify point lookup over a collection of ranges."""

    def test_empty_index_finds_nothing(self) -> None:
        """An empty index never finds a range."""
        assert RangeIndex().lookup(HEAP_START) is None

    def test_lookup_hit(self) -> None:
        """An address inside a range should find that range."""
        r = _range(HEAP_START, HEAP_END)
        assert RangeIndex([r]).lookup(HEAP_START + 0x1000) is r

    def test_lookup_miss_between_ranges(self) -> None:
        """Addresses in a gap between ranges are not found."""
        index = RangeIndex([_range(0x1000, 0x2000), _range(0x3000, 0x4000)])
        assert index.lookup(0x2800) is None

    def test_lookup_picks_owning_range(self) -> None:
        """Among several ranges, exactly the owner is returned."""
        low = _range(0x1000, 0x2000)
        mid = _range(0x2000, 0x3000, page_size=HUGE_PAGE_KB)
        high = _range(0x3000, 0x4000)
        index = RangeIndex([low, mid, high])
        assert index.lookup(0x1FFF) is low
        assert index.lookup(0x2000) is mid
        assert index.lookup(0x3000) is high
        assert index.lookup(0x4000) is None

    def test_unsorted_ranges(self) -> None:
        """Lookup should not assume the ranges are sorted."""
        high = _range(0x9000, 0xA000)
        low = _range(0x1000, 0x2000)
        index = RangeIndex([high, low])
        assert index.lookup(0x1800) is low
        assert index.lookup(0x9800) is high

    def test_insertion_order_kept(self) -> None:
        """Iteration and ``ranges`` follow insertion order."""
        first = _range(0x9000, 0xA000)
        second = _range(0x1000, 0x2000)
        index = RangeIndex([first, second])
        assert list(index) == [first, second]
        assert index.ranges == (first, second)
        assert len(index) == len([first, second])
