"""Trace side of the check — the VM's page-size claims.

Re-exports public symbols so callers can write::

    from py_pagecheck.trace import parse_trace, page_size_in_kb
"""

from py_pagecheck.trace.parser import TraceAssertion, load_trace, parse_trace
from py_pagecheck.trace.units import UNIT_MULTIPLIERS, page_size_in_kb

__all__ = [
    "UNIT_MULTIPLIERS",
    "TraceAssertion",
    "load_trace",
    "page_size_in_kb",
    "parse_trace",
]
