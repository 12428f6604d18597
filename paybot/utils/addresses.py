"""Address format helpers shared by the parser, directory and executor."""

from __future__ import annotations

import re

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
ADDRESS_FRAGMENT = r"0x[a-fA-F0-9]{40}"


def is_valid_address(value: object) -> bool:
    """Return True if ``value`` is ``0x`` followed by exactly 40 hex digits."""
    if not isinstance(value, str):
        return False
    return bool(ADDRESS_PATTERN.fullmatch(value))


def shorten_address(value: str, head: int = 6, tail: int = 4) -> str:
    """Render ``0xAbCdEf…1234`` for compact display."""
    if not value or len(value) <= head + tail:
        return value or ""
    return f"{value[:head]}…{value[-tail:]}"
