"""
MRZ fraud heuristics.

Every rule adds points to a risk score and a reason to the audit trail. The
reasons list matters as much as the score: a reviewer must be able to see
exactly which signals fired.

Scores only ever go up as rules fire, then get clamped to [0, 100]. A score
of 40 or more marks the document as suspicious.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable

from .dates import to_date, years_between
from .models import FraudAssessment, ValidationResult
from .mrz import validate_mrz

logger = logging.getLogger(__name__)

SUSPICION_THRESHOLD = 40
MAX_RISK_SCORE = 100

MIN_PLAUSIBLE_SPAN_YEARS = 15
MAX_PLAUSIBLE_SPAN_YEARS = 100

_FRENCH_CARD_NUMBER = re.compile(r"^[A-Z0-9]{12}$")
_FORBIDDEN_MRZ_CHARS = re.compile(r"[^A-Z0-9<\n\r ]")


# ─── Rules ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FraudRule:
    """One heuristic: fires when ``check(validation, raw_text)`` is True."""

    code: str
    points: int
    reason: str
    check: Callable[[ValidationResult, str], bool]


def _validity_span(validation: ValidationResult) -> float | None:
    """Years between birth and expiry, None if either is not a real date."""
    birth = to_date(validation.extracted_data.birth_date)
    expiry = to_date(validation.extracted_data.expiry_date)
    if birth is None or expiry is None:
        return None
    return years_between(birth, expiry)


def _span_too_short(validation: ValidationResult, _raw: str) -> bool:
    span = _validity_span(validation)
    return span is not None and span < MIN_PLAUSIBLE_SPAN_YEARS


def _span_too_long(validation: ValidationResult, _raw: str) -> bool:
    span = _validity_span(validation)
    return span is not None and span > MAX_PLAUSIBLE_SPAN_YEARS


def _french_number_malformed(validation: ValidationResult, _raw: str) -> bool:
    data = validation.extracted_data
    if data.issuing_country != "FRA" or data.document_number is None:
        return False
    return not _FRENCH_CARD_NUMBER.match(data.document_number.replace("<", ""))


def _forbidden_characters(_validation: ValidationResult, raw_text: str) -> bool:
    return bool(_FORBIDDEN_MRZ_CHARS.search(raw_text.upper()))


FRAUD_RULES: tuple[FraudRule, ...] = (
    FraudRule(
        "DOCUMENT_NUMBER_CHECKSUM", 40,
        "Document number checksum invalid",
        lambda v, _raw: not v.checksums.document_number.valid,
    ),
    FraudRule(
        "BIRTH_DATE_CHECKSUM", 30,
        "Birth date checksum invalid",
        lambda v, _raw: not v.checksums.birth_date.valid,
    ),
    FraudRule(
        "EXPIRY_DATE_CHECKSUM", 30,
        "Expiry date checksum invalid",
        lambda v, _raw: not v.checksums.expiry_date.valid,
    ),
    FraudRule(
        "VALIDITY_SPAN_SHORT", 20,
        f"Birth to expiry span under {MIN_PLAUSIBLE_SPAN_YEARS} years",
        _span_too_short,
    ),
    FraudRule(
        "VALIDITY_SPAN_LONG", 20,
        f"Birth to expiry span over {MAX_PLAUSIBLE_SPAN_YEARS} years",
        _span_too_long,
    ),
    FraudRule(
        "FRENCH_NUMBER_FORMAT", 15,
        "French document number is not 12 alphanumeric characters",
        _french_number_malformed,
    ),
    FraudRule(
        "FORBIDDEN_CHARACTERS", 25,
        "Characters outside the MRZ alphabet",
        _forbidden_characters,
    ),
)


# ─── Public API ──────────────────────────────────────────────────────


def assess_fraud(validation: ValidationResult, raw_text: str) -> FraudAssessment:
    """Run every fraud rule against an already computed validation."""
    reasons: list[str] = []
    score = 0

    for rule in FRAUD_RULES:
        if rule.check(validation, raw_text):
            reasons.append(rule.reason)
            score += rule.points

    score = min(MAX_RISK_SCORE, max(0, score))
    suspicious = score >= SUSPICION_THRESHOLD
    if suspicious:
        logger.warning("MRZ fraud suspected (score %d): %s", score, "; ".join(reasons))

    return FraudAssessment(suspicious_fraud=suspicious, reasons=reasons, risk_score=score)


def detect_mrz_fraud(text: str, today: date | None = None) -> FraudAssessment:
    """Validate ``text`` as an MRZ and score it for fraud signals."""
    return assess_fraud(validate_mrz(text, today), text)
