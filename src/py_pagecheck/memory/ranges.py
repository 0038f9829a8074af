"""Address ranges — the snapshot's view of the address space.

Each record in ``/proc/<pid>/smaps`` describes one contiguous mapping:
a half-open span of virtual addresses ``[start, end)``, the page size
the kernel reports for it, and a set of ``VmFlags``.  Two of those
flags matter when judging page sizes:

    - ``hg`` — the mapping is advised for **transparent huge pages**.
      The kernel may promote it to huge pages at any time, and
      ``KernelPageSize`` keeps reporting the base page size when it does.
    - ``ht`` — the mapping is backed by **explicit huge pages**
      (hugetlbfs).  ``KernelPageSize`` reports the huge page size.

``RangeIndex`` answers "which mapping owns this address?".  smaps
lists mappings in address order in practice, but nothing guarantees it,
so lookup is a linear scan in insertion order.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from py_pagecheck.errors import SmapsParseError

MAX_ADDRESS = (1 << 64) - 1


@dataclass(frozen=True)
class AddressRange:
    """Describe one mapping from the smaps snapshot.

    Frozen so a recorded range cannot drift from what the snapshot said.
    """

    start: int
    """First address in the mapping."""

    end: int
    """First address past the mapping (exclusive)."""

    page_size: int
    """Page size in KB as reported by ``KernelPageSize``."""

    transparent_huge: bool = False
    """True when the mapping carries the ``hg`` flag."""

    explicit_huge: bool = False
    """True when the mapping carries the ``ht`` flag."""

    def __post_init__(self) -> None:
        """Reject ranges that cannot come from a well-formed snapshot."""
        if not 0 <= self.start <= MAX_ADDRESS or not 0 <= self.end <= MAX_ADDRESS:
            msg = f"Address outside 64-bit space: {self.start:#x}-{self.end:#x}"
            raise SmapsParseError(msg)
        if self.start >= self.end:
            msg = f"Empty or inverted range: {self.start:#x}-{self.end:#x}"
            raise SmapsParseError(msg)
        if self.page_size <= 0:
            msg = f"Non-positive page size {self.page_size} KB for {self.start:#x}-{self.end:#x}"
            raise SmapsParseError(msg)

    def includes(self, address: int) -> bool:
        """Return True if *address* lies in ``[start, end)``."""
        return self.start <= address < self.end

    def __str__(self) -> str:
        """Format like ``[7f00, 7f10) pageSize=4KB isTHP=False isHUGETLB=False``."""
        return (
            f"[{self.start:x}, {self.end:x}) pageSize={self.page_size}KB "
            f"isTHP={self.transparent_huge} isHUGETLB={self.explicit_huge}"
        )


class RangeIndex:
    """Read-only collection of ranges with point lookup.

    Ranges are kept in the order they were given.
    """

    def __init__(self, ranges: Iterable[AddressRange] = ()) -> None:
        """Create an index over *ranges*."""
        self._ranges: tuple[AddressRange, ...] = tuple(ranges)

    def lookup(self, address: int) -> AddressRange | None:
        """Return the first range containing *address*, or None."""
        for address_range in self._ranges:
            if address_range.includes(address):
                return address_range
        return None

    @property
    def ranges(self) -> tuple[AddressRange, ...]:
        """Return all ranges in insertion order."""
        return self._ranges

    def __iter__(self) -> Iterator[AddressRange]:
        """Iterate over ranges in insertion order."""
        return iter(self._ranges)

    def __len__(self) -> int:
        """Return the number of ranges."""
        return len(self._ranges)
