"""
MRZ decoding and check digit validation (ICAO 9303).

The decoder is positional, not a general parser: every field lives at a fixed
column of a fixed-length line. Supported layouts:

  TD3  (2 x 44)  passport
      line 2: [NUMBER 9][chk][NAT 3][BIRTH 6][chk][SEX][EXPIRY 6][chk]
              [PERSONAL NUMBER 14][chk][COMPOSITE chk]
  ID2  (2 x 36)  French national ID card
      line 2: [NUMBER 12][chk][NAT 3][BIRTH 6][chk][SEX][EXPIRY 6][chk] ...
  TD1  (2/3 x 30) residence permit
      line 2: [NUMBER 9][chk][NAT 3][BIRTH 6][chk][SEX][EXPIRY 6][chk] ...

Line 1 is shared: [CODE 2][ISSUER 3][SURNAME<<GIVEN<NAMES<<<...].

A failed check digit is an error, but decoding always continues: the caller
gets every field we could read together with the list of what went wrong.
"""

from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass
from datetime import date

from .checksum import compute_check_digit
from .dates import normalize_mrz_date, to_date
from .exceptions import MRZFormatError
from .locator import classify_mrz
from .models import (
    ChecksumResult,
    Checksums,
    DocumentType,
    IdentityRecord,
    MRZBlock,
    MRZFormat,
    Sex,
    ValidationResult,
)

logger = logging.getLogger(__name__)

MAX_NAME_TOKENS = 4

SEX_MARKERS: dict[str, Sex] = {
    "M": Sex.MALE,
    "F": Sex.FEMALE,
    "X": Sex.UNSPECIFIED,
    "<": Sex.UNSPECIFIED,
}

_WHITESPACE = re.compile(r"\s+")


# ─── Grammars ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MRZGrammar:
    """Column layout of one MRZ format."""

    format: MRZFormat
    document_type: DocumentType
    line_length: int
    document_number_length: int
    has_composite: bool = False

    # Offsets on line 2 follow from the document number length.
    @property
    def nationality_start(self) -> int:
        return self.document_number_length + 1

    @property
    def birth_start(self) -> int:
        return self.nationality_start + 3

    @property
    def sex_position(self) -> int:
        return self.birth_start + 7

    @property
    def expiry_start(self) -> int:
        return self.sex_position + 1

    def accepts_code(self, code: str) -> bool:
        if self.format is MRZFormat.TD3:
            return code.startswith("P")
        return code in {"ID", "I<", "AC", "IP"}


GRAMMARS: dict[MRZFormat, MRZGrammar] = {
    MRZFormat.TD3: MRZGrammar(MRZFormat.TD3, DocumentType.PASSPORT, 44, 9, has_composite=True),
    MRZFormat.ID2: MRZGrammar(MRZFormat.ID2, DocumentType.ID, 36, 12),
    MRZFormat.TD1: MRZGrammar(MRZFormat.TD1, DocumentType.RESIDENCE_PERMIT, 30, 9),
}

# TD3 composite: number+chk, birth+chk, expiry+chk+personal number+chk.
TD3_COMPOSITE_SLICES: tuple[slice, ...] = (slice(0, 10), slice(13, 20), slice(21, 43))
TD3_PERSONAL_NUMBER = slice(28, 42)
TD3_COMPOSITE_CHECK = 43


# ─── Public API ──────────────────────────────────────────────────────


def validate_mrz(text: str, today: date | None = None) -> ValidationResult:
    """Validate an MRZ and extract its fields.

    Args:
        text: The MRZ lines (newline separated). Noise characters are stripped.
        today: Reference date for the century rule and the expiry warning.

    Returns:
        ValidationResult. Never raises for malformed input.
    """
    today = today or date.today()
    block = classify_mrz(text)

    try:
        grammar = _grammar_for(block)
    except MRZFormatError as exc:
        logger.info("MRZ rejected: %s", exc.details.get("layout"))
        return ValidationResult(errors=[str(exc)], confidence=0.0)

    return _decode(block, grammar, today)


def score_confidence(checksums: Checksums, error_count: int) -> float:
    """Confidence from the share of valid checksums.

    Clean runs map to [0.1, 1.0]; runs with errors are capped at 0.5.
    """
    results = checksums.results()
    ratio = sum(1 for result in results if result.valid) / len(results)
    if error_count == 0:
        return ratio * 0.9 + 0.1
    return max(0.0, ratio * 0.5)


def clean_mrz_name(value: str) -> str | None:
    """Turn an MRZ name segment into words: '<' → space, max 4 tokens."""
    tokens = _WHITESPACE.sub(" ", value.replace("<", " ")).strip().split(" ")
    cleaned = " ".join(token for token in tokens[:MAX_NAME_TOKENS] if token)
    return cleaned or None


# ─── Decoding ────────────────────────────────────────────────────────


def _grammar_for(block: MRZBlock) -> MRZGrammar:
    if block.format is MRZFormat.UNKNOWN:
        raise MRZFormatError(
            f"Unrecognized MRZ format: {block.describe()}",
            details={"layout": [len(line) for line in block.lines]},
        )
    return GRAMMARS[block.format]


def _decode(block: MRZBlock, grammar: MRZGrammar, today: date) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []
    record = IdentityRecord()
    checksums = Checksums()
    line1, line2 = block.lines[0], block.lines[1]

    # ── Line 1: code, issuer, names ─────────────────────────────────
    code = line1[0:2]
    if not grammar.accepts_code(code):
        warnings.append(f"Unusual document code: {code}")

    record.issuing_country = line1[2:5].replace("<", "") or None
    surname, _, given_names = line1[5:].partition("<<")
    record.last_name = clean_mrz_name(surname)
    record.first_name = clean_mrz_name(given_names)

    # ── Line 2: number, nationality, dates, sex ─────────────────────
    number_end = grammar.document_number_length
    record.document_number = line2[:number_end].replace("<", "") or None
    checksums.document_number = _check(line2[:number_end], line2[number_end])
    if not checksums.document_number.valid:
        errors.append(_checksum_error("Document number", checksums.document_number))

    nationality_start = grammar.nationality_start
    record.nationality = line2[nationality_start:nationality_start + 3].replace("<", "") or None

    birth_start = grammar.birth_start
    birth_raw = line2[birth_start:birth_start + 6]
    checksums.birth_date = _check(birth_raw, line2[birth_start + 6])
    if not checksums.birth_date.valid:
        errors.append(_checksum_error("Birth date", checksums.birth_date))
    record.birth_date = normalize_mrz_date(birth_raw, today)

    marker = line2[grammar.sex_position]
    if marker in SEX_MARKERS:
        record.sex = SEX_MARKERS[marker]
    else:
        warnings.append(f"Unrecognized sex marker: {marker}")

    expiry_start = grammar.expiry_start
    expiry_raw = line2[expiry_start:expiry_start + 6]
    checksums.expiry_date = _check(expiry_raw, line2[expiry_start + 6])
    if not checksums.expiry_date.valid:
        errors.append(_checksum_error("Expiry date", checksums.expiry_date))
    record.expiry_date = normalize_mrz_date(expiry_raw, today)

    # ── TD3 only: personal number and composite check ───────────────
    if grammar.has_composite:
        record.personal_number = line2[TD3_PERSONAL_NUMBER].replace("<", "").strip() or None
        composite = "".join(line2[part] for part in TD3_COMPOSITE_SLICES)
        checksums.overall = _check(composite, line2[TD3_COMPOSITE_CHECK])
        if not checksums.overall.valid:
            warnings.append(_checksum_error("Composite", checksums.overall))

    expiry = to_date(record.expiry_date)
    if expiry is not None and expiry < today:
        warnings.append(f"Document expired on {record.expiry_date}")

    return ValidationResult(
        document_type=grammar.document_type,
        mrz_format=grammar.format,
        valid=not errors,
        errors=errors,
        warnings=warnings,
        extracted_data=record,
        checksums=checksums,
        confidence=score_confidence(checksums, len(errors)),
    )


def _check(data: str, check_char: str) -> ChecksumResult:
    """Compare the printed check digit against the computed one."""
    actual = compute_check_digit(data)
    expected = int(check_char) if check_char in string.digits else None
    return ChecksumResult(expected=expected, actual=actual, valid=expected == actual)


def _checksum_error(label: str, result: ChecksumResult) -> str:
    printed = result.expected if result.expected is not None else "non-digit"
    return f"{label} checksum invalid: expected {printed}, computed {result.actual}"
