"""
Date handling for MRZ and free-text fields.

MRZ dates are YYMMDD with no century. We resolve the century relative to
"today": a two-digit year more than 10 years past the current one is read as
19xx, everything else as 20xx. Calendar validity (e.g. 30 February) is NOT
checked here; the ISO string is built from the digits as printed.
"""

from __future__ import annotations

import re
from datetime import date

# Documents are assumed not to be issued more than this many years ahead.
CENTURY_WINDOW_YEARS = 10

DAYS_PER_YEAR = 365.25

_FREE_TEXT_DATE = re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{4})$")


def normalize_mrz_date(value: str, today: date | None = None) -> str | None:
    """Convert an MRZ ``YYMMDD`` date to ``YYYY-MM-DD``.

    Returns None (date absent, not an error) when the value is not exactly
    six ASCII digits, fillers included.
    """
    if len(value) != 6 or not all(char in "0123456789" for char in value):
        return None

    today = today or date.today()
    yy = int(value[:2])
    century = 1900 if yy > today.year % 100 + CENTURY_WINDOW_YEARS else 2000
    return f"{century + yy}-{value[2:4]}-{value[4:6]}"


def parse_free_text_date(value: str) -> str | None:
    """Convert a ``DD.MM.YYYY`` / ``DD/MM/YYYY`` / ``DD-MM-YYYY`` date to ISO.

    Day, month and year are range-checked (1-31, 1-12, 1900-2100). Anything
    else returns None rather than a bogus date.
    """
    match = _FREE_TEXT_DATE.match(value.strip())
    if not match:
        return None

    day, month, year = (int(part) for part in match.groups())
    if not (1 <= day <= 31 and 1 <= month <= 12 and 1900 <= year <= 2100):
        return None
    return f"{year:04d}-{month:02d}-{day:02d}"


def to_date(iso_value: str | None) -> date | None:
    """Strict calendar parse of an ISO date string. None if impossible."""
    if iso_value is None:
        return None
    try:
        return date.fromisoformat(iso_value)
    except ValueError:
        return None


def years_between(start: date, end: date) -> float:
    """Signed span in (Julian) years from ``start`` to ``end``."""
    return (end - start).days / DAYS_PER_YEAR
