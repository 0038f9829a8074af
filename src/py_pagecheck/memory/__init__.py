"""Memory-map side of the check — smaps parsing and range lookup.

Re-exports public symbols so callers can write::

    from py_pagecheck.memory import RangeIndex, load_smaps
"""

from py_pagecheck.memory.ranges import MAX_ADDRESS, AddressRange, RangeIndex
from py_pagecheck.memory.smaps import (
    Collecting,
    Idle,
    ParserState,
    SmapsParser,
    finish,
    load_smaps,
    parse_smaps,
    step,
)

__all__ = [
    "MAX_ADDRESS",
    "AddressRange",
    "Collecting",
    "Idle",
    "ParserState",
    "RangeIndex",
    "SmapsParser",
    "finish",
    "load_smaps",
    "parse_smaps",
    "step",
]
