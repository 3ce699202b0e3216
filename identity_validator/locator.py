"""
MRZ locating and grammar classification.

Two entry points:
  - classify_mrz(): normalize a text that is supposed to BE an MRZ and tag
    it with its ICAO 9303 grammar. Exact line lengths only; no fuzzy matching.
  - locate_mrz(): find the most plausible MRZ block inside arbitrary OCR
    output (labels, addresses, noise) so it can be handed to the parser.
"""

from __future__ import annotations

import logging
import re

from .models import MRZBlock, MRZFormat

logger = logging.getLogger(__name__)

_NON_MRZ_CHARS = re.compile(r"[^A-Z0-9<\n]")

# OCR often splits an MRZ line with stray spaces or punctuation; those are
# removed before the shape test. 28 is the shortest line worth keeping.
_MRZ_LINE_SHAPE = re.compile(r"^[A-Z0-9<]{28,44}$")

# ICAO 9303 document codes open with P, I, A, C or V.
_DOCUMENT_CODE = re.compile(r"^[PIACV][A-Z<]")

# (line count, line length, format) — first match wins.
GRAMMARS: tuple[tuple[int, int, MRZFormat], ...] = (
    (2, 44, MRZFormat.TD3),
    (2, 36, MRZFormat.ID2),
    (2, 30, MRZFormat.TD1),
    (3, 30, MRZFormat.TD1),
)


def normalize_mrz_text(text: str) -> list[str]:
    """Uppercase, drop every character outside ``[A-Z0-9<\\n]``, split lines."""
    cleaned = _NON_MRZ_CHARS.sub("", text.upper()).strip()
    return [line for line in cleaned.split("\n") if line]


def classify_lines(lines: list[str]) -> MRZFormat:
    for line_count, line_length, mrz_format in GRAMMARS:
        if len(lines) == line_count and all(len(line) == line_length for line in lines):
            return mrz_format
    return MRZFormat.UNKNOWN


def classify_mrz(text: str) -> MRZBlock:
    """Normalize ``text`` and classify it. Never raises."""
    lines = normalize_mrz_text(text)
    return MRZBlock(lines=lines, format=classify_lines(lines))


def locate_mrz(text: str) -> str | None:
    """Find the MRZ block inside raw OCR text.

    Each line is cleaned to the MRZ alphabet first, so stray OCR punctuation
    does not break a block. Consecutive MRZ-shaped lines form a run. Within a
    run we prefer a window that classifies to a known grammar (3-line TD1
    first, since its first two lines are a valid 2-line TD1 too), scanning
    from the bottom because the MRZ sits at the foot of the document.

    A window whose first line does not open with a document code is only
    used when no other window classifies: an all-caps caption of the right
    length must not be taken as line 1. If nothing classifies, the last two
    lines of the last run are returned so validation can report why.

    Returns None when no block with at least one filler '<' exists.
    """
    runs: list[list[str]] = []
    current: list[str] = []
    for raw_line in text.upper().splitlines():
        line = _NON_MRZ_CHARS.sub("", raw_line)
        if _MRZ_LINE_SHAPE.match(line):
            current.append(line)
            continue
        if current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)

    runs = [run for run in runs if len(run) >= 2 and any("<" in line for line in run)]
    if not runs:
        logger.debug("No MRZ-shaped block found in OCR text")
        return None

    unusual: list[str] | None = None
    for run in reversed(runs):
        for size in (3, 2):
            for start in range(len(run) - size, -1, -1):
                window = run[start:start + size]
                if classify_lines(window) is MRZFormat.UNKNOWN:
                    continue
                if _opens_with_document_code(window[0]):
                    return "\n".join(window)
                unusual = unusual or window

    if unusual is not None:
        logger.debug("MRZ window accepted without a known document code: %s", unusual[0][:5])
        return "\n".join(unusual)

    fallback = runs[-1][-2:]
    logger.debug("MRZ-shaped lines found but no grammar matched: %s", [len(line) for line in fallback])
    return "\n".join(fallback)


def _opens_with_document_code(line: str) -> bool:
    return bool(_DOCUMENT_CODE.match(line)) and "<" in line
