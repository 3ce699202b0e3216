"""
ICAO 9303 check digit computation.

Each character gets a numeric value (digits as-is, letters A=10 … Z=35,
filler '<' = 0), is multiplied by the repeating weight sequence 7-3-1, and
the sum is taken modulo 10.

The function is lenient: lowercase is uppercased, and any
character outside the MRZ alphabet counts as a filler. It never raises.
"""

from __future__ import annotations

import string
from types import MappingProxyType

# ─── Constants ───────────────────────────────────────────────────────

CHAR_VALUES: MappingProxyType[str, int] = MappingProxyType({
    **{digit: int(digit) for digit in string.digits},
    **{letter: index + 10 for index, letter in enumerate(string.ascii_uppercase)},
    "<": 0,
})

WEIGHTS: tuple[int, ...] = (7, 3, 1)


def compute_check_digit(value: str) -> int:
    """Return the ICAO 9303 check digit (0-9) of ``value``.

    >>> compute_check_digit("L898902C3")
    6
    >>> compute_check_digit("")
    0
    """
    total = 0
    for position, char in enumerate(value.upper()):
        total += CHAR_VALUES.get(char, 0) * WEIGHTS[position % len(WEIGHTS)]
    return total % 10
