"""Page-size tokens — convert ``4K`` / ``2M`` / ``1G`` to kilobytes.

The VM prints page sizes with a single unit letter.  smaps reports
them in kB, so every trace value is brought to KB before comparing.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from py_pagecheck.errors import TraceParseError
from py_pagecheck.logging import LogLevel

if TYPE_CHECKING:
    from py_pagecheck.logging import Logger

_TOKEN = re.compile(r"(\d+)(\D)")

UNIT_MULTIPLIERS: dict[str, int] = {
    "K": 1,
    "M": 1024,
    "G": 1024 * 1024,
}


def page_size_in_kb(
    token: str,
    *,
    logger: Logger | None = None,
    lineno: int | None = None,
) -> int:
    """Convert a page-size token to KB.

    An unrecognised unit letter yields 0, which never equals a real
    smaps page size, so the comparison that follows fails.  The
    fallback is logged as a warning.

    Args:
        token: A decimal numeral followed by one unit letter.
        logger: Where to record the unknown-unit warning.
        lineno: Trace line the token came from.

    Returns:
        The size in kilobytes.

    Raises:
        TraceParseError: If the token is not a numeral plus one letter.

    """
    parts = _TOKEN.fullmatch(token)
    if parts is None:
        msg = f"Malformed page size {token!r}"
        raise TraceParseError(msg, lineno=lineno)

    value = int(parts.group(1))
    unit = parts.group(2).upper()
    multiplier = UNIT_MULTIPLIERS.get(unit)
    if multiplier is None:
        if logger is not None:
            logger.log(
                LogLevel.WARNING,
                f"Unknown page size unit {parts.group(2)!r} in {token!r}, using 0",
                source="trace",
                lineno=lineno,
            )
        return 0
    return value * multiplier
