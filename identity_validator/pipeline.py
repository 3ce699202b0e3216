"""
Main identity pipeline — orchestrates the full workflow.

Flow:
  ┌─────────┐
  │ Raw OCR │
  └────┬────┘
       │
  ┌────▼────┐     ┌───────────┐
  │  Locate │     │   Regex   │   ← Independent extraction
  │   MRZ   │     │  Extract  │
  └────┬────┘     └─────┬─────┘
  ┌────▼────┐           │
  │ Validate│           │
  │   MRZ   │           │
  └────┬────┘           │
  ┌────▼────┐           │
  │  Fraud  │           │
  └────┬────┘           │
       └───────┬────────┘
               │
        ┌──────▼──────┐
        │   Merger    │   ← MRZ wins when trusted, text fills gaps
        └──────┬──────┘
               │
        ┌──────▼──────┐
        │   Result    │   ← Fields + checksums + risk + review flag
        └─────────────┘

Design principles:
  - Both extraction paths ALWAYS run; neither depends on the other.
  - The MRZ is only trusted when it validates (or nearly does).
  - The core never raises; an unexpected fault degrades to a zero-confidence
    result flagged for manual review.
  - The original OCR text is SHA-256 hashed for audit trail.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import date

from .extractor_regex import detect_document_type, extract_with_regex
from .fraud import assess_fraud
from .locator import locate_mrz
from .models import (
    DocumentType,
    FraudAssessment,
    IdentityExtraction,
    IdentityRecord,
    ValidationResult,
)
from .mrz import validate_mrz

logger = logging.getLogger(__name__)

# Fields where a trusted MRZ overrides the printed text.
MRZ_PRIORITY_FIELDS: tuple[str, ...] = (
    "last_name",
    "first_name",
    "birth_date",
    "document_number",
    "expiry_date",
    "nationality",
    "sex",
)

MRZ_TRUST_CONFIDENCE = 0.5
LOW_OCR_CONFIDENCE = 0.5


class IdentityVerificationPipeline:
    """Orchestrates the full identity extraction workflow.

    Usage:
        pipeline = IdentityVerificationPipeline()
        result = pipeline.run(raw_ocr_text, ocr_confidence=87.5)
        if result.manual_review_flag:
            # route to a human reviewer
            for reason in result.fraud.reasons:
                print(reason)
    """

    def __init__(self, today: date | None = None):
        # Pinned reference date for reproducible runs; None means "today".
        self.today = today

    def run(self, raw_text: str, ocr_confidence: float | None = None) -> IdentityExtraction:
        """Execute the full pipeline on raw OCR text.

        Args:
            raw_text: The raw OCR text of the identity document.
            ocr_confidence: Upstream recognition confidence in [0, 100].

        Returns:
            IdentityExtraction. Never raises.
        """
        # ── Step 0: Audit hash of original input ────────────────────
        doc_hash = hashlib.sha256(raw_text.encode("utf-8")).hexdigest()
        normalized_ocr = _normalize_ocr_confidence(ocr_confidence)

        try:
            return self._run(raw_text, normalized_ocr, doc_hash)
        except Exception:
            logger.exception("Identity pipeline failed for document %s", doc_hash[:16])
            return degraded_result(doc_hash, normalized_ocr)

    def _run(self, raw_text: str, ocr_confidence: float | None, doc_hash: str) -> IdentityExtraction:
        today = self.today or date.today()

        # ── Step 1: Free-text extraction ────────────────────────────
        logger.info("Starting regex extraction...")
        document_type = detect_document_type(raw_text)
        text_record = extract_with_regex(raw_text)

        # ── Step 2: MRZ validation + fraud heuristics ───────────────
        mrz_text = locate_mrz(raw_text)
        if mrz_text is not None:
            logger.info("MRZ block located, validating...")
            validation = validate_mrz(mrz_text, today)
            fraud = assess_fraud(validation, mrz_text)
        else:
            logger.info("No MRZ block located; relying on printed fields")
            validation = ValidationResult(errors=["No MRZ block found in OCR text"])
            fraud = FraudAssessment()

        # ── Step 3: Merge ───────────────────────────────────────────
        mrz_trusted = validation.valid or validation.confidence > MRZ_TRUST_CONFIDENCE
        record = merge_records(text_record, validation.extracted_data, mrz_trusted)

        if mrz_trusted:
            confidence = validation.confidence
        else:
            confidence = ocr_confidence if ocr_confidence is not None else 0.0

        review = needs_manual_review(fraud, record, ocr_confidence, confidence)
        logger.info(
            "Identity extraction done: type=%s, fields=%d, mrz=%s, risk=%d, review=%s",
            document_type.value,
            len(record.resolved_fields()),
            validation.mrz_format.value,
            fraud.risk_score,
            review,
        )

        return IdentityExtraction(
            document_type=document_type,
            extracted_data=record,
            validation=validation,
            fraud=fraud,
            confidence=confidence,
            manual_review_flag=review,
            mrz=mrz_text,
            ocr_confidence=ocr_confidence,
            original_hash=doc_hash,
        )


# ─── Merging ─────────────────────────────────────────────────────────


def merge_records(text: IdentityRecord, mrz: IdentityRecord, mrz_trusted: bool) -> IdentityRecord:
    """Combine printed-text and MRZ fields.

    A trusted MRZ overwrites the printed values it carries; the printed text
    fills every field the MRZ left empty. An untrusted MRZ contributes nothing.
    """
    merged = text.model_copy()
    if not mrz_trusted:
        return merged

    for field_name in MRZ_PRIORITY_FIELDS:
        value = getattr(mrz, field_name)
        if value is not None:
            setattr(merged, field_name, value)

    # Only the MRZ carries these.
    merged.issuing_country = mrz.issuing_country
    merged.personal_number = mrz.personal_number
    return merged


def needs_manual_review(
    fraud: FraudAssessment,
    record: IdentityRecord,
    ocr_confidence: float | None,
    confidence: float,
) -> bool:
    """Suspected fraud, or a poor read that resolved no identity field."""
    overall = ocr_confidence if ocr_confidence is not None else confidence
    return fraud.suspicious_fraud or (overall < LOW_OCR_CONFIDENCE and not record.resolved_fields())


def degraded_result(doc_hash: str = "", ocr_confidence: float | None = None) -> IdentityExtraction:
    """Zero-confidence result flagged for manual review."""
    return IdentityExtraction(
        document_type=DocumentType.UNKNOWN,
        extracted_data=IdentityRecord(),
        validation=ValidationResult(errors=["Identity extraction failed; manual verification required"]),
        fraud=FraudAssessment(),
        confidence=0.0,
        manual_review_flag=True,
        ocr_confidence=ocr_confidence,
        original_hash=doc_hash,
    )


def _normalize_ocr_confidence(ocr_confidence: float | None) -> float | None:
    """Map an OCR engine score in [0, 100] to [0, 1], clamping outliers."""
    if ocr_confidence is None:
        return None
    return min(100.0, max(0.0, float(ocr_confidence))) / 100.0


# ─── Module-level entry point ────────────────────────────────────────


def extract_identity(text: str, ocr_confidence: float | None = None) -> IdentityExtraction:
    """Run the identity pipeline once with default settings."""
    return IdentityVerificationPipeline().run(text, ocr_confidence)
