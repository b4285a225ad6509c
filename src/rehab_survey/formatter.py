"""Amount conversion between raw user input and normalized answers."""

import re

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_numeric(raw: str | int | None) -> int:
    """Strip every non-digit character and parse the rest as base-10.

    Returns 0 when no digits remain.  Never raises.
    """
    if raw is None:
        return 0
    digits = _NON_DIGITS.sub("", str(raw))
    return int(digits) if digits else 0


def display_numeric(n: int) -> str:
    """Comma-grouped decimal string, e.g. ``1000000`` → ``"1,000,000"``."""
    return f"{n:,}"


def format_won(n: int) -> str:
    """Amount with the won suffix used in transcript messages."""
    return display_numeric(n) + "원"
